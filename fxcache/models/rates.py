from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

# Lowest possible timestamp; stands in for a fetch branch that did not run.
NEVER = datetime.min.replace(tzinfo=timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RateRecord(BaseModel):
    code: str
    units_per_usd: float = Field(..., gt=0, allow_inf_nan=False)
    updated_at: datetime

    @field_validator("code")
    @classmethod
    def upper_code(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("currency code must not be empty")
        return v


class FetchStatus(str, Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"


@dataclass(frozen=True)
class FiatResult:
    """Outcome of one pass over the fiat provider chain.

    ``warnings`` lists provider errors that were absorbed; ``missing`` lists
    required codes no provider supplied.
    """

    rates: Dict[str, float]
    timestamp: datetime
    warnings: Tuple[str, ...] = ()
    missing: Tuple[str, ...] = ()

    @property
    def status(self) -> FetchStatus:
        return FetchStatus.PARTIAL if self.missing else FetchStatus.COMPLETE


@dataclass(frozen=True)
class CryptoResult:
    rates: Dict[str, float]
    timestamp: datetime
    dropped: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RatesSnapshot:
    rates: Dict[str, float]
    fiat_timestamp: Optional[datetime]
    crypto_timestamp: Optional[datetime]
    combined_timestamp: datetime
    warnings: Tuple[str, ...] = ()
    missing: Tuple[str, ...] = ()

    @property
    def status(self) -> FetchStatus:
        return FetchStatus.PARTIAL if self.missing else FetchStatus.COMPLETE


class RefreshOutcome(str, Enum):
    UPDATED = "updated"
    PARTIAL = "partial"
    FAILED = "failed"
    SUPERSEDED = "superseded"
    SKIPPED = "skipped"


@dataclass
class Selection:
    """Codes the consumer cares about plus the base code amounts are typed in."""

    codes: List[str] = field(default_factory=list)
    base: str = "USD"

    def __post_init__(self) -> None:
        seen: List[str] = []
        for code in self.codes:
            code = code.strip().upper()
            if code and code not in seen:
                seen.append(code)
        self.codes = seen
        self.base = self.base.strip().upper()
        if self.base not in self.codes:
            self.base = self.codes[0] if self.codes else "USD"
