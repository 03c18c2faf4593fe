"""Pydantic schemas for workflow step results."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

from patientflow.models.episode import EpisodeStatus, EpisodeType
from patientflow.schemas.episode import EpisodeResponse
from patientflow.schemas.patient import PatientCreate, PatientResponse


class WorkflowStage(str, Enum):
    """Patient-facing stage derived from the raw episode status."""

    REGISTRATION = "registration"
    PAYMENT = "payment"
    QUEUE = "queue"
    CONSULTATION = "consultation"
    SERVICES = "services"
    DISCHARGE = "discharge"


class RegistrationRequest(BaseModel):
    """New patient plus the type of the first encounter."""

    patient: PatientCreate
    episode_type: EpisodeType = Field(EpisodeType.OUTPATIENT)


class RegistrationResult(BaseModel):
    patient: PatientResponse
    episode: EpisodeResponse
    status: WorkflowStage = WorkflowStage.REGISTRATION
    next_step: str
    available_actions: list[str]


class PaymentResult(BaseModel):
    success: bool = True
    message: str
    next_step: str
    available_actions: list[str]


class QueuePlacement(BaseModel):
    queue_position: int = Field(..., description="Current queue length")
    estimated_wait_time: int = Field(..., description="Minutes, 15 per queued patient")
    status: EpisodeStatus = EpisodeStatus.IN_QUEUE


class ConsultationStarted(BaseModel):
    status: EpisodeStatus = EpisodeStatus.IN_CONSULTATION
    available_actions: list[str]


class EpisodeUpdateResult(BaseModel):
    """Result of adding a service or completing an episode."""

    success: bool = True
    message: str
    episode: EpisodeResponse


class PatientWorkflow(BaseModel):
    """Where a patient currently is in their active episode."""

    patient: PatientResponse
    current_episode: EpisodeResponse
    status: WorkflowStage
    next_step: str
    available_actions: list[str]


class EpisodeFlowItem(BaseModel):
    """One row of the patient-flow board."""

    patient_id: int
    patient_name: str
    episode_number: str
    episode_type: EpisodeType
    status: EpisodeStatus
    registration_time: datetime
    consultation_fee: Decimal
    fees_paid: bool
    current_step: str
    next_action: str
