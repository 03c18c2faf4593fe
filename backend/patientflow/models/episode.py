"""Episode model - One clinical encounter tracked from registration to discharge."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from sqlalchemy import DateTime, Enum as SQLEnum
from sqlalchemy import ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from patientflow.models.base import BaseModel, JSONType, utcnow


class EpisodeType(str, Enum):
    """Type of encounter."""

    OUTPATIENT = "outpatient"
    INPATIENT = "inpatient"
    EMERGENCY = "emergency"


class EpisodeStatus(str, Enum):
    """Raw episode workflow status."""

    REGISTERED = "registered"  # Created, consultation fee unpaid
    IN_QUEUE = "in-queue"  # Fee paid, waiting for a clinician
    IN_CONSULTATION = "in-consultation"  # Clinician has called the patient
    TREATMENT = "treatment"  # Services in progress (never set by the manager)
    COMPLETED = "completed"  # Discharged, read-only from here on


def _enum_values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class Episode(BaseModel):
    """
    Episode (patient encounter) model.

    Keyed by ``episode_number``. Updates are guarded by ``version`` so two
    writers cannot silently overwrite each other.
    """

    __tablename__ = "episodes"
    __table_args__ = (
        # Active-episode lookups: by patient, excluding completed
        Index("idx_episodes_patient_status", "patient_id", "status"),
    )

    episode_number: Mapped[str] = mapped_column(
        String(8),
        nullable=False,
        unique=True,
        index=True,
        comment="Type prefix + last 6 digits of epoch milliseconds",
    )

    patient_id: Mapped[int] = mapped_column(
        ForeignKey("patients.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="Patient this episode belongs to",
    )

    episode_type: Mapped[EpisodeType] = mapped_column(
        SQLEnum(EpisodeType, name="episode_type", native_enum=False, create_constraint=True, values_callable=_enum_values),
        nullable=False,
        default=EpisodeType.OUTPATIENT,
    )

    status: Mapped[EpisodeStatus] = mapped_column(
        SQLEnum(EpisodeStatus, name="episode_status", native_enum=False, create_constraint=True, values_callable=_enum_values),
        nullable=False,
        default=EpisodeStatus.REGISTERED,
    )

    registration_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    # Consultation fee
    consultation_fee: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
    )
    fees_paid: Mapped[bool] = mapped_column(default=False, nullable=False)

    # Clinician
    doctor_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Clinician who called the patient in",
    )
    consultation_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    discharge_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Ordered service lists (append-only while the episode is open)
    prescriptions: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    lab_tests: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    services: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)

    # Optimistic concurrency counter
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        """String representation."""
        return f"<Episode {self.episode_number} patient={self.patient_id} status={self.status.value}>"

    @property
    def is_active(self) -> bool:
        return self.status != EpisodeStatus.COMPLETED
