"""
Kids Quiz Content API

Backs a children's audio-visual quiz: normalized content packs from the
catalog server (with offline sample data), purchase records, and
server-driven quiz sessions.

To run:
    uvicorn app.main:app --reload --port 8000
"""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.deps import Services, build_services
from app.routers import content, purchases, sessions

settings = get_settings()

logger = logging.getLogger(__name__)


def create_app(services: Optional[Services] = None) -> FastAPI:
    """Build the app around a set of services (production wiring by default)."""
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Kids Quiz Content API",
        description="Content packs, purchases and quiz sessions for a children's quiz",
        version="1.0.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    app.state.services = services or build_services()

    # CORS middleware (for development)
    if settings.debug:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Include routers
    app.include_router(content.router, tags=["Content"])
    app.include_router(purchases.router, tags=["Purchases"])
    app.include_router(sessions.router, tags=["Sessions"])

    # =========================================================================
    # HEALTH & INFO ENDPOINTS
    # =========================================================================

    @app.get("/")
    async def root():
        """Root endpoint - service info."""
        return {
            "service": "Kids Quiz Content API",
            "version": "1.0.0",
            "status": "running",
            "debug": settings.debug,
            "endpoints": {
                "packs": "/packs",
                "purchases": "/purchases",
                "sessions": "/sessions",
                "health": "/health",
                "docs": "/docs" if settings.debug else "disabled"
            }
        }

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy"}

    @app.get("/health/catalog")
    async def catalog_health():
        """Reachability of the catalog server."""
        return await app.state.services.api.health_check()

    # =========================================================================
    # STARTUP & SHUTDOWN
    # =========================================================================

    @app.on_event("startup")
    async def startup():
        logger.info("Kids Quiz Content API starting")
        logger.info(f"Catalog: {settings.api_base_url}")
        logger.info(f"Redis: {settings.redis_host}:{settings.redis_port}, fallback dir: {settings.storage_dir}")

    @app.on_event("shutdown")
    async def shutdown():
        app.state.services.sessions.close_all()
        logger.info("Kids Quiz Content API shutting down")

    return app


app = create_app()
