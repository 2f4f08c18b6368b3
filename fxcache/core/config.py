from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from fxcache.models.currency import DEFAULT_SELECTION


class Settings(BaseSettings):
    """Application settings loaded from environment with defaults.

    Environment variable mapping follows pydantic's rules (e.g., DATA_DIR, DB_FILENAME,
    FIAT_PROVIDERS='["frankfurter","open-er-api"]', REFRESH_BACKOFF_SECONDS).
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Basic app metadata
    app_name: str = "FX Rate Cache"
    debug: bool = False
    version: str = "0.1.0"

    # Data & persistence
    data_dir: Path = Path("data")
    db_filename: str = "rates.sqlite3"
    db_path: Optional[Path] = None  # derived if not provided

    # Upstream providers, tried in this order for fiat
    fiat_providers: List[str] = Field(
        default_factory=lambda: ["exchangerate-host", "frankfurter", "open-er-api"]
    )
    crypto_price_url: AnyHttpUrl = "https://api.coingecko.com/api/v3/simple/price"
    http_timeout_seconds: float = 10.0

    # Fetch cycle policy
    refresh_max_attempts: int = Field(2, ge=1)
    refresh_backoff_seconds: float = Field(0.3, ge=0)
    foreground_refresh_seconds: float = Field(60.0, gt=0)
    background_refresh_seconds: float = Field(15 * 60.0, gt=0)
    background_budget_seconds: float = Field(25.0, gt=0)
    enable_ticker: bool = True

    # Staleness thresholds (seconds since last update)
    fiat_stale_after_seconds: int = 65 * 60
    crypto_stale_after_seconds: int = 70

    default_selection: List[str] = Field(default_factory=lambda: list(DEFAULT_SELECTION))

    def init_post_load(self) -> None:
        """Finalize derived fields and ensure directories exist."""
        if self.db_path is None:
            self.db_path = self.data_dir / self.db_filename
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        # Provider names resolve to a closed set; fail at startup, not mid-cycle
        from fxcache.services.rates.providers import resolve_fiat_providers

        resolve_fiat_providers(self.fiat_providers)
        self.default_selection = [c.upper() for c in self.default_selection]


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    settings.init_post_load()
    return settings
