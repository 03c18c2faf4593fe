"""API dependencies."""

from functools import lru_cache

from patientflow.core.database import async_session_maker, get_db
from patientflow.services.health import HealthCheckService
from patientflow.services.workflow import WorkflowManager


@lru_cache()
def get_workflow_manager() -> WorkflowManager:
    """Workflow manager bound to the application database (cached)."""
    return WorkflowManager(async_session_maker)


def get_health_service() -> HealthCheckService:
    return HealthCheckService(async_session_maker)


__all__ = [
    "get_db",
    "get_health_service",
    "get_workflow_manager",
]
