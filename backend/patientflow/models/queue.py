"""Outpatient queue model - waiting-line positions for consultation."""

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SQLEnum
from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from patientflow.models.base import Base, utcnow


class QueuePriority(str, Enum):
    """Queue priority, derived from the episode type."""

    HIGH = "high"
    NORMAL = "normal"


class QueueEntry(Base):
    """
    One row per waiting episode.

    The unique constraint on ``episode_number`` makes queueing idempotent at
    the database level as well.
    """

    __tablename__ = "outpatient_queue"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    episode_number: Mapped[str] = mapped_column(
        ForeignKey("episodes.episode_number", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        comment="Queued episode",
    )

    patient_id: Mapped[int] = mapped_column(
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    queued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        index=True,
    )

    priority: Mapped[QueuePriority] = mapped_column(
        SQLEnum(QueuePriority, name="queue_priority", native_enum=False, create_constraint=True, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=QueuePriority.NORMAL,
    )

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="waiting")

    def __repr__(self) -> str:
        return f"<QueueEntry {self.episode_number} priority={self.priority.value}>"
