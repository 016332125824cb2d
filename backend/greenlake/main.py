"""
GreenLake City API.

Sustainable-tourism bookings: a cart and checkout for hotels, routes,
vehicles and services, EcoToken rewards settled against the external
token ledger, and a catalog scored from the ingested city datasets.

Run with `uvicorn greenlake.main:app`.
"""

from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from greenlake.core.config import get_settings
from greenlake.core.logging import setup_logging, get_logger
from greenlake.core.metrics import metrics_endpoint
from greenlake.api.router import api_router
from greenlake.api.middleware import RequestLoggingMiddleware
from greenlake.api.errors import register_exception_handlers
from greenlake.db.session import get_db
from greenlake.infrastructure import get_redis, close_redis, close_ledger
from greenlake.services.cache_service import get_cache_stats

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging("api")
    logger.info(
        "application_starting",
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        ledger_url=settings.LEDGER_BASE_URL,
        signer_mode=settings.LEDGER_SIGNER_MODE,
    )

    if await get_redis():
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Catalog served without cache")

    yield

    await close_ledger()
    await close_redis()
    logger.info("application_shutdown")


def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Sustainable tourism bookings with EcoToken rewards",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Response-Time"],
    )
    application.add_middleware(RequestLoggingMiddleware)
    register_exception_handlers(application)
    application.include_router(api_router)

    @application.get("/health", tags=["Health"])
    async def health_check(db: AsyncSession = Depends(get_db)):
        """Liveness for Docker and load balancers. A dead cache only degrades the catalog."""
        try:
            await db.execute(text("SELECT 1"))
            database = "ok"
        except SQLAlchemyError as e:
            logger.error("health_database_unreachable", error=str(e))
            database = "unavailable"

        return {
            "status": "healthy" if database == "ok" else "degraded",
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "database": database,
            "cache": await get_cache_stats(),
            "ledger": {"url": settings.LEDGER_BASE_URL, "signerMode": settings.LEDGER_SIGNER_MODE},
        }

    @application.get("/metrics", tags=["Health"], include_in_schema=False)
    def metrics():
        return metrics_endpoint()

    @application.get("/", tags=["Root"])
    async def root():
        return {
            "message": f"Welcome to {settings.APP_NAME}",
            "version": settings.APP_VERSION,
            "docs": "/docs",
        }

    return application


app = create_app()
