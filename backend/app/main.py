"""
FastAPI application entry point.

Uses structured logging from portal.logging. The engine container and the
cache cleanup scheduler are created in the lifespan and live on app.state.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from portal.container import PortalContainer
from portal.logging import RequestLoggingMiddleware, configure_logging, get_logger

from .config import Settings, get_settings
from .error_handlers import register_exception_handlers
from .routers import cache as cache_router
from .routers import customers as customers_router
from .routers import issues as issues_router
from .routers import teams as teams_router
from .scheduler import build_scheduler, shutdown_scheduler, start_scheduler

logger = get_logger("api")


def _log_config_warnings(settings: Settings) -> None:
    errors, warnings = settings.validate_production_config()
    for warning in warnings:
        logger.warning("config_warning", message=warning)
    for error in errors:
        logger.error("config_error", message=error)


def create_app(
    container: PortalContainer | None = None,
    settings: Settings | None = None,
    enable_scheduler: bool | None = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        container: Pre-built engine container (tests pass one with fakes);
            built from settings in the lifespan when omitted
        settings: Settings override, defaults to get_settings()
        enable_scheduler: Override ENABLE_CACHE_CLEANUP
    """
    settings = settings or get_settings()
    configure_logging(level="DEBUG" if settings.debug else "INFO")
    run_scheduler = settings.enable_cache_cleanup if enable_scheduler is None else enable_scheduler

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("app_startup", app_name=settings.app_name)
        _log_config_warnings(settings)

        app_container = container or PortalContainer.from_settings(settings)
        await app_container.start()
        app.state.container = app_container

        scheduler = None
        if run_scheduler:
            scheduler = build_scheduler(app_container.cache, settings.cache_cleanup_interval)
            start_scheduler(scheduler)
        app.state.scheduler = scheduler

        try:
            yield
        finally:
            logger.info("app_shutdown")
            if scheduler is not None:
                shutdown_scheduler(scheduler)
            await app_container.close()

    app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)

    # Structured request logging middleware
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)

    @app.get("/health", tags=["health"])
    async def health_check():
        """Liveness check. Returns no infrastructure details."""
        return {"status": "ok"}

    app.include_router(customers_router.router, prefix=settings.api_prefix)
    app.include_router(teams_router.router, prefix=settings.api_prefix)
    app.include_router(issues_router.router, prefix=settings.api_prefix)
    app.include_router(cache_router.router, prefix=settings.api_prefix)

    return app


app = create_app()
