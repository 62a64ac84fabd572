"""
FastAPI application initialization
"""

from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from api.routes import analytics, health, ingestion
from api.middleware import RequestContextMiddleware
from core.config import settings
from core.logging import setup_logging
from core.services import Services, build_services
import logging

logger = logging.getLogger(__name__)


def create_app(services: Optional[Services] = None) -> FastAPI:
    """
    Build the application.

    ``services`` is normally composed in the lifespan from settings; tests pass
    a prebuilt graph instead.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = services is None
        app_services = services or build_services(settings)
        app.state.services = app_services

        logger.info("Starting market history API")
        logger.info(f"Environment: {app_services.settings.ENVIRONMENT}")
        url = app_services.settings.DATABASE_URL
        logger.info(f"Database: {url.split('@')[1] if '@' in url else 'configured'}")

        if app_services.scheduler is not None:
            app_services.scheduler.start()

        try:
            yield
        finally:
            logger.info("Shutting down market history API")
            if owned:
                await app_services.aclose()
            elif app_services.scheduler is not None:
                app_services.scheduler.stop()

    app = FastAPI(
        title="Market History API",
        description="Daily price-history ingestion and flip analytics",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # Prebuilt services are usable even when the lifespan is not run
    if services is not None:
        app.state.services = services

    app.add_middleware(RequestContextMiddleware)

    app.include_router(health.router)
    app.include_router(ingestion.router)
    app.include_router(analytics.router)

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": "Market History API",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/health",
            "endpoints": {
                "ingest": "/ingest",
                "backfill": "/ingest/backfill",
                "runs": "/ingestion-runs",
                "flip_recommendations": "/analytics/flip-recommendations"
            }
        }

    return app


app = create_app()


def main():
    import uvicorn

    setup_logging()
    uvicorn.run("api.main:app", host=settings.API_HOST, port=settings.API_PORT)


if __name__ == "__main__":
    main()
