"""
Main FastAPI Application

API server for the AI visibility scan pipeline.
"""

import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from config.settings import settings

from src.routes import health_routes, scan_routes

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%H:%M:%S'
)

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="API for measuring brand visibility across AI assistants"
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(health_routes.router)
    app.include_router(scan_routes.router)

    @app.on_event("startup")
    async def startup_event():
        """Check external services on startup."""
        from agents.llm_providers import available_providers
        from config.database import test_connection

        providers = available_providers()
        if providers:
            logger.info(f"✅ Providers configured: {', '.join(providers)}")
        else:
            logger.warning("⚠️  No AI provider credentials configured, scans will fail with CONFIG_ERROR")

        status = test_connection()
        if status["connected"]:
            logger.info("✅ Redis: Connected")
        else:
            logger.warning(f"⚠️  Redis: Not connected - {status['error']}")

    @app.on_event("shutdown")
    async def shutdown_event():
        from config.database import close_connections
        close_connections()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
