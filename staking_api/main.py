import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from staking_api.api.handler import register_exception_handlers
from staking_api.api.router import api_router
from staking_api.config import settings
from staking_api.database import Database
from staking_api.health import check_database_health, log_database_health
from staking_api.middleware import (
    CorsMiddleware,
    configure_logging,
    setup_request_logging_middleware,
)


configure_logging(settings.DEBUG)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    database: Database = app.state.database

    healthy = True
    if settings.run_startup_health_check:
        status = await check_database_health(database)
        log_database_health(status)
        healthy = status.is_healthy

    if healthy:
        await database.create_all()
    else:
        logger.warning(
            "Starting without a reachable database at %s; tables were not "
            "created",
            database.safe_url,
        )
    yield
    await database.dispose()


def create_app(database: Optional[Database] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        database: Storage to serve from; built from settings when omitted
    """
    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="API for the staking dashboard: users, stakes and "
        "wallet transactions",
        version=settings.VERSION,
        openapi_url=(
            f"{settings.API_PREFIX}/openapi.json" if settings.DEBUG else None
        ),
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        lifespan=lifespan,
    )
    app.state.database = database or Database(
        settings.effective_database_url, echo=settings.DEBUG
    )

    setup_request_logging_middleware(
        app,
        exclude_paths=[
            "/health",
            "/docs",
            "/redoc",
            "/openapi.json",
            f"{settings.API_PREFIX}/openapi.json",
        ],
    )

    # Outermost layer
    app.add_middleware(
        CorsMiddleware, allowed_origins=settings.CORS_ALLOWED_ORIGINS
    )

    app.include_router(api_router, prefix=settings.API_PREFIX)
    register_exception_handlers(app)

    @app.get("/health", tags=["Health"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "staking_api.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.DEBUG,
    )
