import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core import errors
from .core.config import Settings, get_settings
from .core.logging import init_logging, request_context_middleware
from .db.dal import RateStore
from .db.migrate import apply_migrations
from .routers import rates, selection
from .services.rates.fetcher import RateFetcher, SupportsFetchAll
from .services.rates.refresh import RateRefreshService
from .services.scheduler import BackgroundRefresher, ForegroundTicker

logger = logging.getLogger("fxcache")


def create_app(
    settings_override: Settings | None = None,
    fetcher: SupportsFetchAll | None = None,
) -> FastAPI:
    """Application factory.

    settings_override: pass an already constructed Settings instance for tests
    to isolate environment (e.g., temp DB). Falls back to cached get_settings().
    fetcher: substitute orchestrator (tests, previews); defaults to the live
    providers configured in settings.
    """
    settings = settings_override or get_settings()
    # Initialize logging early
    init_logging(debug=settings.debug)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            apply_migrations(settings.db_path)  # type: ignore[arg-type]
        except Exception:
            # Failing to init DB is fatal; re-raise after logging
            logger.exception("failed to apply migrations on startup")
            raise

        store = RateStore(settings.db_path)  # type: ignore[arg-type]
        owned_fetcher = RateFetcher.from_settings(settings) if fetcher is None else None
        service = RateRefreshService(
            store,
            fetcher or owned_fetcher,
            store.get_selection(settings.default_selection),
            max_attempts=settings.refresh_max_attempts,
            backoff_seconds=settings.refresh_backoff_seconds,
        )
        service.load_stored()
        app.state.settings = settings
        app.state.rate_service = service

        ticker = ForegroundTicker(service, settings.foreground_refresh_seconds)
        background = BackgroundRefresher(
            service,
            settings.default_selection,
            budget_seconds=settings.background_budget_seconds,
            interval_seconds=settings.background_refresh_seconds,
        )
        tasks: list[asyncio.Task] = []
        if settings.enable_ticker:
            # Startup counts as becoming active: refresh once right away
            tasks.append(asyncio.create_task(service.refresh_now()))
            tasks.append(asyncio.create_task(background.run_forever()))
            ticker.start()
        try:
            yield
        finally:
            await ticker.stop()
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            if owned_fetcher is not None:
                await owned_fetcher.aclose()

    app = FastAPI(
        title=settings.app_name,
        debug=settings.debug,
        version=settings.version,
        lifespan=lifespan,
    )

    # Middleware (request id / structured logging)
    app.middleware("http")(request_context_middleware)

    # Error handlers
    app.add_exception_handler(StarletteHTTPException, errors.http_error_handler)
    app.add_exception_handler(RequestValidationError, errors.validation_error_handler)
    app.add_exception_handler(Exception, errors.server_error_handler)

    # Routers
    app.include_router(rates.router)
    app.include_router(selection.router)

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": settings.version}

    return app


app = create_app()
