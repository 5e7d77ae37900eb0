"""
Switchboard - Integration connection lifecycle manager

FastAPI application entry point.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from switchboard import __version__
from switchboard.app.api import integrations_router
from switchboard.app.dependencies import get_settings, initialize_services, shutdown_services

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Starting Switchboard services...")
    try:
        await initialize_services()
        logger.info("Switchboard services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise

    yield

    # Shutdown
    logger.info("Shutting down Switchboard services...")
    try:
        await shutdown_services()
        logger.info("Switchboard services shut down successfully")
    except Exception as e:
        logger.error(f"Error during shutdown: {e}", exc_info=True)


# Create FastAPI application
settings = get_settings()

app = FastAPI(
    title="Switchboard",
    description="Connect, disconnect, test and configure third-party integrations per tenant",
    version=__version__,
    lifespan=lifespan,
    debug=settings.debug,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(integrations_router, prefix="/api/v1")


@app.get("/", tags=["root"])
async def root() -> dict[str, str]:
    """Root endpoint with service info."""
    return {
        "service": "switchboard",
        "version": __version__,
        "status": "running",
    }


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, Any]:
    """
    Health check endpoint.

    Returns service health status including:
    - Catalog size
    - MongoDB connection status
    - Audit queue depth
    """
    from switchboard.app.dependencies import get_audit, get_manager, get_store
    from switchboard.config.store import MongoTenantConfigStore

    manager = get_manager()
    store = get_store()
    audit = get_audit()

    database = "n/a"
    if isinstance(store, MongoTenantConfigStore):
        database = "connected" if store.is_connected else "disconnected"

    return {
        "status": "healthy",
        "integrations": len(manager.registry),
        "database": database,
        "audit": {"pending": audit.pending, "dropped": audit.dropped},
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "switchboard.app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
