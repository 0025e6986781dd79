"""
Health check router for liveness and readiness probes.
"""
from fastapi import APIRouter, Depends, status

from app.database.connections import get_mongo_client
from app.database.registry import SchemaRegistry
from app.dependencies.schemas import get_schema_registry

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
)
async def health_check():
    """
    Basic health check endpoint.
    Returns 200 if the API is running.
    """
    return {"status": "healthy"}


@router.get(
    "/health/ready",
    status_code=status.HTTP_200_OK,
    summary="Readiness check with dependencies",
)
async def readiness_check(registry: SchemaRegistry = Depends(get_schema_registry)):
    """
    Readiness check that verifies the database connection.
    Returns 200 with a per-dependency status and the number of loaded schemas.
    """
    checks = {
        "api": "healthy",
        "mongodb": "unknown",
    }

    try:
        client = await get_mongo_client()
        await client.admin.command("ping")
        checks["mongodb"] = "healthy"
    except Exception as e:
        checks["mongodb"] = f"unhealthy: {str(e)}"

    all_healthy = all(v == "healthy" for v in checks.values())

    return {
        "status": "healthy" if all_healthy else "degraded",
        "checks": checks,
        "schemas": len(registry),
    }
