"""
Riham Inventory - Main Application
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import settings
from .db import MigrationError
from .dependencies import init_dependencies, close_dependencies
from .routes import (
    auth_router, inventory_router, sales_router, users_router,
    reports_router, system_router
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    logger.info("Starting Riham Inventory...")
    try:
        await init_dependencies()
    except MigrationError as e:
        logger.critical(f"Database bootstrap failed, refusing to start: {e}")
        raise
    logger.info("Application ready")
    yield
    logger.info("Shutting down...")
    await close_dependencies()


# Create app
app = FastAPI(
    title="Riham Inventory",
    description="Local inventory and sales tracking",
    version="1.0.0",
    lifespan=lifespan
)

# Include routers
app.include_router(auth_router)
app.include_router(inventory_router)
app.include_router(sales_router)
app.include_router(users_router)
app.include_router(reports_router)
app.include_router(system_router)


@app.get("/health")
async def health():
    """Health check endpoint (no auth required)."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "riham.main:app",
        host=settings.host,
        port=settings.port
    )
