"""Encounter workflow API endpoints.

Thin HTTP wrappers over ``WorkflowManager``; workflow errors are turned into
responses by the application-level exception handler.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from patientflow.api.dependencies import get_workflow_manager
from patientflow.schemas.episode import (
    CompletionRequest,
    ConsultationNotesRequest,
    ConsultationStartRequest,
    EpisodeOpenRequest,
    EpisodeResponse,
    PaymentRequest,
    QueueEntryResponse,
    ServiceOrderRequest,
)
from patientflow.schemas.workflow import (
    ConsultationStarted,
    EpisodeFlowItem,
    EpisodeUpdateResult,
    PatientWorkflow,
    PaymentResult,
    QueuePlacement,
    RegistrationRequest,
    RegistrationResult,
)
from patientflow.services.workflow import WorkflowManager

router = APIRouter()

Manager = Annotated[WorkflowManager, Depends(get_workflow_manager)]


@router.post(
    "/registrations",
    response_model=RegistrationResult,
    status_code=status.HTTP_201_CREATED,
    summary="Register a patient and open their first episode",
)
async def register_patient(request: RegistrationRequest, manager: Manager) -> RegistrationResult:
    """
    Front-desk registration.

    Creates the patient, opens an episode with the fee for its type and raises
    the pending consultation charge, all in one transaction.
    """
    return await manager.register_patient_with_episode(request.patient, request.episode_type)


@router.post(
    "/patients/{patient_id}/episodes",
    response_model=RegistrationResult,
    status_code=status.HTTP_201_CREATED,
    summary="Open a new episode for a returning patient",
)
async def open_episode(patient_id: int, request: EpisodeOpenRequest, manager: Manager) -> RegistrationResult:
    return await manager.open_episode(patient_id, request.episode_type)


@router.get(
    "/patients/{patient_id}/workflow",
    response_model=PatientWorkflow,
    summary="Current workflow stage of a patient",
)
async def get_patient_workflow(patient_id: int, manager: Manager) -> PatientWorkflow:
    workflow = await manager.get_patient_workflow(patient_id)
    if workflow is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No active episode for patient {patient_id}",
        )
    return workflow


@router.get(
    "/episodes",
    response_model=list[EpisodeFlowItem],
    summary="Patient-flow board (all active episodes)",
)
async def list_active_episodes(manager: Manager) -> list[EpisodeFlowItem]:
    return await manager.list_active_episodes()


@router.get("/episodes/{episode_number}", response_model=EpisodeResponse)
async def get_episode(episode_number: str, manager: Manager) -> EpisodeResponse:
    return await manager.get_episode(episode_number)


@router.post(
    "/episodes/{episode_number}/payment",
    response_model=PaymentResult,
    summary="Pay the consultation fee",
)
async def pay_consultation_fee(
    episode_number: str, request: PaymentRequest, manager: Manager
) -> PaymentResult:
    return await manager.pay_consultation_fee(
        episode_number, request.payment_method, request.transaction_reference
    )


@router.post(
    "/episodes/{episode_number}/queue",
    response_model=QueuePlacement,
    summary="Add a paid episode to the outpatient queue",
)
async def add_to_queue(episode_number: str, manager: Manager) -> QueuePlacement:
    return await manager.add_to_outpatient_queue(episode_number)


@router.post(
    "/episodes/{episode_number}/consultation",
    response_model=ConsultationStarted,
    summary="Call the patient in for consultation",
)
async def start_consultation(
    episode_number: str, request: ConsultationStartRequest, manager: Manager
) -> ConsultationStarted:
    return await manager.start_consultation(episode_number, request.doctor_id)


@router.put("/episodes/{episode_number}/notes", response_model=EpisodeResponse)
async def record_consultation_notes(
    episode_number: str, request: ConsultationNotesRequest, manager: Manager
) -> EpisodeResponse:
    return await manager.record_consultation_notes(episode_number, request.notes)


@router.post(
    "/episodes/{episode_number}/services",
    response_model=EpisodeUpdateResult,
    summary="Order a lab test, prescription or radiology study",
)
async def add_service(
    episode_number: str, request: ServiceOrderRequest, manager: Manager
) -> EpisodeUpdateResult:
    return await manager.add_service_to_episode(episode_number, request.order)


@router.post(
    "/episodes/{episode_number}/completion",
    response_model=EpisodeUpdateResult,
    summary="Complete (discharge) the episode",
)
async def complete_episode(
    episode_number: str, request: CompletionRequest, manager: Manager
) -> EpisodeUpdateResult:
    return await manager.complete_episode(episode_number, request.discharge_notes)


@router.get("/queue", response_model=list[QueueEntryResponse], summary="Outpatient queue")
async def get_outpatient_queue(manager: Manager) -> list[QueueEntryResponse]:
    return await manager.get_outpatient_queue()
