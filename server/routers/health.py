"""Operator health routes."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from core.container import container
from core.health import HealthMonitor
from core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(
    monitor: HealthMonitor = Depends(lambda: container.health())
):
    """Store health: 200 when healthy, 503 otherwise."""
    result = await monitor.check_health()
    status_code = 200 if result["status"] == "healthy" else 503
    if status_code != 200:
        logger.warning("Health check reported unhealthy store", error=result.get("error"))
    return JSONResponse(status_code=status_code, content=result)


@router.get("/live")
async def liveness():
    """Process liveness only; does not touch the store."""
    return {"status": "ok"}
