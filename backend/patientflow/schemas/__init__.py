"""Pydantic schemas for request/response validation."""

from patientflow.schemas.billing import (
    BillingEntryCreate,
    BillingEntryResponse,
    BillingEntryUpdate,
)
from patientflow.schemas.episode import (
    EpisodeResponse,
    LabTestOrder,
    PrescriptionOrder,
    QueueEntryResponse,
    RadiologyOrder,
    ServiceOrder,
)
from patientflow.schemas.patient import PatientCreate, PatientResponse, PatientUpdate
from patientflow.schemas.workflow import (
    PatientWorkflow,
    RegistrationResult,
    WorkflowStage,
)

__all__ = [
    "BillingEntryCreate",
    "BillingEntryResponse",
    "BillingEntryUpdate",
    "EpisodeResponse",
    "LabTestOrder",
    "PrescriptionOrder",
    "RadiologyOrder",
    "ServiceOrder",
    "QueueEntryResponse",
    "PatientCreate",
    "PatientResponse",
    "PatientUpdate",
    "PatientWorkflow",
    "RegistrationResult",
    "WorkflowStage",
]
