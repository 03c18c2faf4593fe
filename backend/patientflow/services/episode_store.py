"""Keyed episode and outpatient-queue storage.

One row per episode and one row per queue entry. Reads made for mutation take
a row lock (``SELECT ... FOR UPDATE``, ignored by SQLite) and every episode
update is checked against the ``version`` column, so concurrent writers get a
``StaleDataError`` instead of a lost update.
"""

from typing import Optional

from sqlalchemy import delete, exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from patientflow.core.exceptions import EpisodeNotFoundError
from patientflow.models.episode import Episode, EpisodeStatus
from patientflow.models.queue import QueueEntry


class EpisodeStore:
    """Episode/queue repository bound to one session (one unit of work)."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # ------------------------------------------------------------------
    # Episodes
    # ------------------------------------------------------------------

    async def get(self, episode_number: str, *, for_update: bool = False) -> Optional[Episode]:
        stmt = select(Episode).where(Episode.episode_number == episode_number)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def require(self, episode_number: str, *, for_update: bool = True) -> Episode:
        """Fetch an episode or raise ``EpisodeNotFoundError``."""
        episode = await self.get(episode_number, for_update=for_update)
        if episode is None:
            raise EpisodeNotFoundError(episode_number)
        return episode

    async def number_taken(self, episode_number: str) -> bool:
        result = await self.session.execute(
            select(exists().where(Episode.episode_number == episode_number))
        )
        return bool(result.scalar())

    async def add(self, episode: Episode) -> Episode:
        self.session.add(episode)
        await self.session.flush()
        return episode

    async def save(self, episode: Episode) -> Episode:
        """Flush pending changes; raises ``StaleDataError`` on a version mismatch."""
        await self.session.flush()
        return episode

    async def find_active_for_patient(self, patient_id: int) -> Optional[Episode]:
        """Earliest non-completed episode for a patient."""
        result = await self.session.execute(
            select(Episode)
            .where(
                Episode.patient_id == patient_id,
                Episode.status != EpisodeStatus.COMPLETED,
            )
            .order_by(Episode.registration_date, Episode.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_active(self) -> list[Episode]:
        result = await self.session.execute(
            select(Episode)
            .where(Episode.status != EpisodeStatus.COMPLETED)
            .order_by(Episode.registration_date, Episode.id)
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Outpatient queue
    # ------------------------------------------------------------------

    async def queue_entry(self, episode_number: str) -> Optional[QueueEntry]:
        result = await self.session.execute(
            select(QueueEntry).where(QueueEntry.episode_number == episode_number)
        )
        return result.scalar_one_or_none()

    async def enqueue(self, entry: QueueEntry) -> QueueEntry:
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def dequeue(self, episode_number: str) -> int:
        """Remove an episode from the queue; returns the number of rows removed."""
        result = await self.session.execute(
            delete(QueueEntry).where(QueueEntry.episode_number == episode_number)
        )
        return result.rowcount or 0

    async def queue_length(self) -> int:
        result = await self.session.execute(select(func.count(QueueEntry.id)))
        return result.scalar_one()

    async def queue(self) -> list[QueueEntry]:
        result = await self.session.execute(
            select(QueueEntry).order_by(QueueEntry.queued_at, QueueEntry.id)
        )
        return list(result.scalars().all())
