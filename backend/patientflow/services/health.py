"""Health check service for monitoring system components."""

import asyncio
import logging
import time

from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from patientflow.core.config import settings
from patientflow.core.database import async_session_maker
from patientflow.models.base import utcnow
from patientflow.models.episode import Episode, EpisodeStatus
from patientflow.models.queue import QueueEntry
from patientflow.schemas.health import HealthCheckResponse, HealthStatus, ServiceHealth

logger = logging.getLogger(__name__)

# Services that make the whole system unhealthy when they fail
CRITICAL_SERVICES = ("database",)


class HealthCheckService:
    """Service for checking health of all system components."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = async_session_maker) -> None:
        self.session_factory = session_factory

    async def check_database(self) -> ServiceHealth:
        """
        Check database health.

        Tests:
        - Connection availability
        - Simple query execution
        - Response time

        Returns:
            ServiceHealth with database status
        """
        start_time = time.time()
        try:
            async with self.session_factory() as session:
                result = await session.execute(text("SELECT 1"))
                result.scalar()
                dialect = session.get_bind().dialect.name

            response_time_ms = (time.time() - start_time) * 1000
            return ServiceHealth(
                status=HealthStatus.HEALTHY,
                response_time_ms=response_time_ms,
                details={"dialect": dialect},
            )

        except Exception as e:
            logger.error(f"Database health check failed: {e}", exc_info=True)
            response_time_ms = (time.time() - start_time) * 1000
            return ServiceHealth(
                status=HealthStatus.UNHEALTHY,
                response_time_ms=response_time_ms,
                error=str(e),
            )

    async def check_workflow_tables(self) -> ServiceHealth:
        """
        Check that the workflow tables are readable.

        Reports the number of active episodes and the outpatient queue length.
        """
        start_time = time.time()
        try:
            async with self.session_factory() as session:
                active = await session.execute(
                    select(func.count(Episode.id)).where(Episode.status != EpisodeStatus.COMPLETED)
                )
                queued = await session.execute(select(func.count(QueueEntry.id)))
                details = {
                    "active_episodes": active.scalar_one(),
                    "queue_length": queued.scalar_one(),
                }

            response_time_ms = (time.time() - start_time) * 1000
            return ServiceHealth(
                status=HealthStatus.HEALTHY,
                response_time_ms=response_time_ms,
                details=details,
            )

        except Exception as e:
            logger.error(f"Workflow table health check failed: {e}", exc_info=True)
            response_time_ms = (time.time() - start_time) * 1000
            return ServiceHealth(
                status=HealthStatus.UNHEALTHY,
                response_time_ms=response_time_ms,
                error=str(e),
            )

    async def perform_health_check(self) -> HealthCheckResponse:
        """
        Perform health check of all services in parallel.

        Returns:
            HealthCheckResponse with overall system health
        """
        timestamp = utcnow()

        results = await asyncio.gather(
            self.check_database(),
            self.check_workflow_tables(),
            return_exceptions=True,
        )

        services = {
            name: result
            if isinstance(result, ServiceHealth)
            else ServiceHealth(status=HealthStatus.UNHEALTHY, error=str(result))
            for name, result in zip(("database", "workflow"), results)
        }

        return HealthCheckResponse(
            status=self._compute_overall_status(services),
            timestamp=timestamp,
            version=settings.APP_VERSION,
            services=services,
        )

    def _compute_overall_status(self, services: dict[str, ServiceHealth]) -> HealthStatus:
        """
        Compute overall system health from individual services.

        Logic:
        - UNHEALTHY: the database is unreachable
        - DEGRADED: the database answers but a workflow table cannot be read
        - HEALTHY: all services are healthy
        """
        for service_name in CRITICAL_SERVICES:
            if services[service_name].status == HealthStatus.UNHEALTHY:
                return HealthStatus.UNHEALTHY

        for service_name, service_health in services.items():
            if (
                service_name not in CRITICAL_SERVICES
                and service_health.status == HealthStatus.UNHEALTHY
            ):
                return HealthStatus.DEGRADED

        return HealthStatus.HEALTHY
