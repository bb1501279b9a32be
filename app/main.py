import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from .core.config import get_settings, Settings
from .core.logging import init_logging, request_context_middleware
from .core import errors
from .routers import convert, health
from .services.rates.base import RateGatewayError
from .services.rates.cache_service import (
    RateCacheController,
    build_rate_cache_controller,
)


def create_app(
    settings_override: Settings | None = None,
    rate_cache: RateCacheController | None = None,
) -> FastAPI:
    """Application factory.

    settings_override: pass an already constructed Settings instance for tests
    to isolate environment. Falls back to cached get_settings().
    rate_cache: inject a prebuilt controller (tests use fake sources and clocks);
    by default one is built from settings and lives as long as the app.
    """
    settings = settings_override or get_settings()
    # Initialize logging early
    init_logging(debug=settings.debug)

    app = FastAPI(
        title=settings.app_name, debug=settings.debug, version=settings.version
    )
    app.state.settings = settings
    app.state.rate_cache = rate_cache or build_rate_cache_controller(settings)

    # Middleware (request id / structured logging)
    app.middleware("http")(request_context_middleware)

    # Error handlers
    app.add_exception_handler(StarletteHTTPException, errors.not_found_handler)
    app.add_exception_handler(RequestValidationError, errors.validation_error_handler)
    app.add_exception_handler(RateGatewayError, errors.gateway_error_handler)
    app.add_exception_handler(Exception, errors.server_error_handler)

    # Routers
    app.include_router(health.router)
    app.include_router(convert.router)

    @app.get("/")
    async def root():
        return {"message": settings.app_name, "version": settings.version}

    logging.getLogger("app").info(
        "rate provider '%s', fresh window %ss, stale window %ss",
        settings.exchange_rate_provider,
        settings.rates_fresh_window_seconds,
        settings.rates_stale_window_seconds,
    )
    return app


def run() -> None:
    """Console entry point: serve the app on settings.port (PORT env override)."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port, log_config=None)


app = create_app()

if __name__ == "__main__":
    run()
