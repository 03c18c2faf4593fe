"""Database models for PatientFlow."""

from patientflow.models.base import Base
from patientflow.models.patient import Patient
from patientflow.models.episode import Episode, EpisodeStatus, EpisodeType
from patientflow.models.queue import QueueEntry, QueuePriority
from patientflow.models.billing import BillingRecord, PaymentStatus

__all__ = [
    "Base",
    "Patient",
    "Episode",
    "EpisodeStatus",
    "EpisodeType",
    "QueueEntry",
    "QueuePriority",
    "BillingRecord",
    "PaymentStatus",
]
