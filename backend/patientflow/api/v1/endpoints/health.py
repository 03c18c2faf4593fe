"""Health check API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from patientflow.api.dependencies import get_health_service
from patientflow.schemas.health import HealthCheckResponse, HealthStatus
from patientflow.services.health import HealthCheckService

router = APIRouter()


@router.get(
    "/health",
    response_model=HealthCheckResponse,
    status_code=status.HTTP_200_OK,
    summary="System health check",
    description="Check database connectivity and workflow tables",
    tags=["Health"],
)
async def health_check(
    health_service: Annotated[HealthCheckService, Depends(get_health_service)],
) -> HealthCheckResponse:
    """
    Perform health check of all services.

    Response statuses:
    - `healthy`: All services operational
    - `degraded`: Database reachable but workflow tables unreadable
    - `unhealthy`: Database down

    Always returns 200 so clients can parse the detailed response; check the
    `status` field for strict monitoring.
    """
    return await health_service.perform_health_check()


@router.get(
    "/health/live",
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
    tags=["Health"],
)
async def liveness_probe() -> dict[str, str]:
    """Always 200 while the process is running."""
    return {"status": "alive"}


@router.get(
    "/health/ready",
    status_code=status.HTTP_200_OK,
    summary="Readiness probe",
    tags=["Health"],
    responses={
        200: {"description": "Service is ready to accept traffic"},
        503: {"description": "Database is unreachable"},
    },
)
async def readiness_probe(
    health_service: Annotated[HealthCheckService, Depends(get_health_service)],
) -> dict[str, str]:
    """
    Readiness probe endpoint.

    Raises:
        HTTPException: 503 if the database is unhealthy
    """
    health_response = await health_service.perform_health_check()

    if health_response.status == HealthStatus.UNHEALTHY:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "status": "not_ready",
                "reason": "Critical services are unhealthy",
                "services": {
                    name: {
                        "status": service.status.value,
                        "error": service.error,
                    }
                    for name, service in health_response.services.items()
                    if service.status == HealthStatus.UNHEALTHY
                },
            },
        )

    return {"status": "ready"}
