from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.exc import InterfaceError, OperationalError

from giftpoints_api import __version__
from giftpoints_api.core.settings import settings
from giftpoints_api.db.session import engine
from .api.routes import api_router
from .core.logging import configure_logging
from .observability.tracing import configure_tracing


APP_VERSION = __version__


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Gift points API starting",
        environment=settings.environment,
        welcome_bonus_points=settings.welcome_bonus_points,
    )
    try:
        yield
    finally:
        await engine.dispose()
        logger.info("Gift points API stopped")


async def _store_unavailable(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Ledger store unavailable", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Ledger store unavailable, please retry"},
    )


def create_app() -> FastAPI:
    """Application factory for the gift points FastAPI service."""
    configure_logging(
        service_name="giftpoints-api",
        environment=settings.environment,
        version=APP_VERSION,
    )

    app = FastAPI(
        title="Gift Points API",
        version=APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    configure_tracing(
        app,
        config=settings,
        service_name="giftpoints-api",
        service_version=APP_VERSION,
    )

    app.add_exception_handler(OperationalError, _store_unavailable)
    app.add_exception_handler(InterfaceError, _store_unavailable)
    app.include_router(api_router)

    @app.get("/healthz", tags=["Health"])
    async def health_check() -> dict[str, str]:
        return {
            "status": "ok",
            "environment": settings.environment,
            "version": APP_VERSION,
        }

    return app
