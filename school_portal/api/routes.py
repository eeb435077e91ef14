"""Health endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter

from school_portal import database
from school_portal.services import redis_service

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check() -> dict:
    """Liveness check with dependency status.

    Always 200 while the process serves requests; ``data`` reports whether
    the database and Redis are reachable.
    """
    db_status = "healthy" if await database.health_check() else "unhealthy"
    redis_status = "healthy" if await redis_service.get_redis() is not None else "unavailable"

    return {
        "success": True,
        "message": "API is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "data": {"database": db_status, "redis": redis_status},
    }
