"""
Operator HTTP surface for the shared cache layer.

Exposes the store health contract at /health; everything else in the layer is
consumed in-process through the dependency injection container.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from core.container import container
from core.logging import configure_logging, get_logger
from routers import health

# Initialize settings and logging
settings = container.settings()
configure_logging(settings)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    logger.info("Starting cache layer service")
    await container.layer().startup()
    yield
    await container.layer().shutdown()
    logger.info("Cache layer shutdown complete")


app = FastAPI(
    title="Cache Layer",
    version="1.0.0",
    description="Shared cache, session, rate limiting and queueing layer",
    lifespan=lifespan,
)

app.include_router(health.router)


if __name__ == "__main__":
    import uvicorn
    logger.info("Starting cache layer service",
                host=settings.host, port=settings.port, debug=settings.debug)
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
