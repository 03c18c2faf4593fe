"""Pydantic schemas for episodes, queue entries and service orders."""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field

from patientflow.models.episode import EpisodeStatus, EpisodeType
from patientflow.models.queue import QueuePriority


class EpisodeResponse(BaseModel):
    """Episode as returned by the API."""

    id: int
    episode_number: str = Field(..., description="Type prefix + 6 time-derived digits")
    patient_id: int
    episode_type: EpisodeType
    status: EpisodeStatus
    registration_date: datetime
    consultation_fee: Decimal
    fees_paid: bool
    doctor_id: Optional[int] = None
    consultation_notes: Optional[str] = None
    discharge_notes: Optional[str] = None
    completed_at: Optional[datetime] = None
    prescriptions: list[dict[str, Any]] = Field(default_factory=list)
    lab_tests: list[dict[str, Any]] = Field(default_factory=list)
    services: list[dict[str, Any]] = Field(default_factory=list)
    version: int

    class Config:
        """Pydantic config."""

        from_attributes = True


class QueueEntryResponse(BaseModel):
    """Outpatient queue entry."""

    episode_number: str
    patient_id: int
    queued_at: datetime
    priority: QueuePriority
    status: str

    class Config:
        """Pydantic config."""

        from_attributes = True


# ============================================================================
# Service orders (tagged by ``kind``)
# ============================================================================

class LabTestOrder(BaseModel):
    """Laboratory test ordered during consultation."""

    kind: Literal["lab-test"] = "lab-test"
    test_name: str = Field(..., min_length=1, max_length=200)
    test_type: Optional[str] = Field(None, description="blood, urine, imaging, ...")
    urgency: str = Field("routine", description="routine, urgent, stat")
    cost: Optional[Decimal] = Field(None, ge=0, decimal_places=2, description="Overrides the default lab price")

    class Config:
        """Pydantic config."""

        extra = "allow"


class PrescriptionOrder(BaseModel):
    """Medication prescribed during consultation."""

    kind: Literal["prescription"] = "prescription"
    medication_name: str = Field(..., min_length=1, max_length=200)
    dosage: str = Field(..., min_length=1, max_length=100)
    frequency: Optional[str] = None
    duration: Optional[str] = None
    quantity: Optional[int] = Field(None, gt=0)
    instructions: Optional[str] = None
    cost: Optional[Decimal] = Field(None, ge=0, decimal_places=2, description="Overrides the default pharmacy price")

    class Config:
        """Pydantic config."""

        extra = "allow"


class RadiologyOrder(BaseModel):
    """Imaging study. There is no default radiology price, so cost is required."""

    kind: Literal["radiology"] = "radiology"
    study_name: str = Field(..., min_length=1, max_length=200)
    body_part: Optional[str] = None
    cost: Decimal = Field(..., ge=0, decimal_places=2)

    class Config:
        """Pydantic config."""

        extra = "allow"


ServiceOrder = Annotated[
    Union[LabTestOrder, PrescriptionOrder, RadiologyOrder],
    Field(discriminator="kind"),
]


# ============================================================================
# Request bodies
# ============================================================================

class EpisodeOpenRequest(BaseModel):
    """Open a new episode for an existing patient."""

    episode_type: EpisodeType = Field(EpisodeType.OUTPATIENT)


class PaymentRequest(BaseModel):
    """Consultation fee payment."""

    payment_method: str = Field(..., min_length=1, max_length=50, description="cash, card, insurance, ...")
    transaction_reference: Optional[str] = Field(None, max_length=100)


class ConsultationStartRequest(BaseModel):
    """Clinician calling the patient in."""

    doctor_id: int = Field(..., gt=0)


class ConsultationNotesRequest(BaseModel):
    notes: str = Field(..., min_length=1)


class CompletionRequest(BaseModel):
    discharge_notes: Optional[str] = None


class ServiceOrderRequest(BaseModel):
    """Wrapper so the discriminated union can be used as a request body."""

    order: ServiceOrder
