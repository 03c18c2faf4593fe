"""Encounter workflow manager.

Drives a patient episode through

    registered -> in-queue -> in-consultation -> (treatment) -> completed

and raises the matching billing entries. Each operation is one unit of work:
the episode/queue changes and the billing entries it creates are committed
together or not at all.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, AsyncIterator, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from patientflow.core.exceptions import (
    ActiveEpisodeExistsError,
    ConsultationFeeAlreadyPaidError,
    ConsultationFeeNotPaidError,
    EpisodeClosedError,
    EpisodeConflictError,
    EpisodeNumberExhaustedError,
    PatientNotFoundError,
    UnsupportedServiceError,
    UpstreamServiceError,
    WorkflowError,
)
from patientflow.models.base import utcnow
from patientflow.models.billing import PaymentStatus
from patientflow.models.episode import Episode, EpisodeStatus, EpisodeType
from patientflow.models.queue import QueueEntry, QueuePriority
from patientflow.schemas.billing import BillingEntryCreate
from patientflow.schemas.episode import (
    EpisodeResponse,
    LabTestOrder,
    PrescriptionOrder,
    QueueEntryResponse,
    RadiologyOrder,
    ServiceOrder,
)
from patientflow.schemas.patient import PatientCreate, PatientResponse
from patientflow.schemas.workflow import (
    ConsultationStarted,
    EpisodeFlowItem,
    EpisodeUpdateResult,
    PatientWorkflow,
    PaymentResult,
    QueuePlacement,
    RegistrationResult,
    WorkflowStage,
)
from patientflow.services.billing import BillingLedger, SqlBillingLedger, quantize_money
from patientflow.services.episode_store import EpisodeStore
from patientflow.services.patient_registry import PatientDirectory, SqlPatientDirectory

logger = logging.getLogger(__name__)

# Pricing and queue policy
EMERGENCY_CONSULTATION_FEE = Decimal("50.00")
STANDARD_CONSULTATION_FEE = Decimal("30.00")
DEFAULT_LAB_TEST_PRICE = Decimal("25.00")
DEFAULT_PRESCRIPTION_PRICE = Decimal("15.00")
MINUTES_PER_QUEUED_PATIENT = 15

EPISODE_NUMBER_ATTEMPTS = 5
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

REGISTRATION_NEXT_STEP = "Payment of consultation fee required"
REGISTRATION_ACTIONS = ["pay-consultation-fee", "view-patient-details"]
PAYMENT_MESSAGE = "Payment successful. Patient added to consultation queue."
PAYMENT_NEXT_STEP = "Patient in queue for doctor consultation"
PAYMENT_ACTIONS = ["view-queue-position", "call-for-consultation"]
CONSULTATION_ACTIONS = [
    "add-notes",
    "prescribe-medication",
    "order-lab-tests",
    "refer-to-specialist",
    "discharge",
]


# ============================================================================
# Pure policy helpers
# ============================================================================

def epoch_milliseconds(moment: datetime) -> int:
    """Milliseconds since the Unix epoch (naive datetimes are taken as UTC)."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment - _EPOCH) // timedelta(milliseconds=1)


def episode_prefix(episode_type: EpisodeType) -> str:
    if episode_type == EpisodeType.INPATIENT:
        return "IP"
    if episode_type == EpisodeType.EMERGENCY:
        return "EM"
    return "OP"


def generate_episode_number(episode_type: EpisodeType, now_ms: int) -> str:
    """
    Episode number: two-letter type prefix + last 6 characters of the epoch
    milliseconds string.

    Leading zeros inside the suffix are kept as they are, e.g. a timestamp of
    1000000000123 gives ``OP000123``.
    """
    return f"{episode_prefix(episode_type)}{str(now_ms)[-6:]}"


def consultation_fee_for(episode_type: EpisodeType) -> Decimal:
    if episode_type == EpisodeType.EMERGENCY:
        return EMERGENCY_CONSULTATION_FEE
    return STANDARD_CONSULTATION_FEE


def queue_priority_for(episode_type: EpisodeType) -> QueuePriority:
    if episode_type == EpisodeType.EMERGENCY:
        return QueuePriority.HIGH
    return QueuePriority.NORMAL


@dataclass(frozen=True)
class StageInfo:
    """Patient-facing view of a raw episode status."""

    stage: WorkflowStage
    next_step: str
    available_actions: tuple[str, ...]


WORKFLOW_STAGES: dict[EpisodeStatus, StageInfo] = {
    EpisodeStatus.REGISTERED: StageInfo(
        WorkflowStage.PAYMENT,
        "Pay consultation fee to proceed",
        ("pay-consultation-fee",),
    ),
    EpisodeStatus.IN_QUEUE: StageInfo(
        WorkflowStage.QUEUE,
        "Waiting for doctor consultation",
        ("view-queue-position",),
    ),
    EpisodeStatus.IN_CONSULTATION: StageInfo(
        WorkflowStage.CONSULTATION,
        "Doctor consultation in progress",
        ("add-notes", "prescribe-medication", "order-lab-tests", "discharge"),
    ),
    # TODO: no operation stores "treatment" yet; decide with the clinic whether
    # adding a service during consultation should move the episode here.
    EpisodeStatus.TREATMENT: StageInfo(
        WorkflowStage.SERVICES,
        "Complete prescribed services",
        ("pay-services", "collect-medication", "lab-tests"),
    ),
}

# Fallback for completed and any unrecognised status
DISCHARGE_STAGE = StageInfo(WorkflowStage.DISCHARGE, "Episode completed", ("generate-summary",))


def describe_stage(status: Any) -> StageInfo:
    return WORKFLOW_STAGES.get(status, DISCHARGE_STAGE)


_FLOW_STEPS = {
    EpisodeStatus.REGISTERED: ("Payment Required", "Add to Queue"),
    EpisodeStatus.IN_QUEUE: ("In Queue", "Call for Consultation"),
    EpisodeStatus.IN_CONSULTATION: ("With Doctor", "Complete Consultation"),
    EpisodeStatus.TREATMENT: ("Services/Treatment", "Complete Services"),
}


def flow_step(status: EpisodeStatus, fees_paid: bool) -> tuple[str, str]:
    """(current step, next action) labels for the patient-flow board."""
    if not fees_paid:
        return "Payment Pending", "Pay Consultation Fee"
    return _FLOW_STEPS.get(status, ("Unknown", "No Action"))


# ============================================================================
# Workflow manager
# ============================================================================

@dataclass
class UnitOfWork:
    """Collaborators sharing one session and one transaction."""

    session: AsyncSession
    episodes: EpisodeStore
    patients: PatientDirectory
    billing: BillingLedger


class WorkflowManager:
    """
    Encounter workflow manager.

    Constructed with its store (an async session factory) so several managers
    can coexist, e.g. one per test database. Collaborator factories receive the
    unit-of-work session and may be replaced to plug in other registries.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        patient_directory: Optional[Callable[[AsyncSession], PatientDirectory]] = None,
        billing_ledger: Optional[Callable[[AsyncSession], BillingLedger]] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.session_factory = session_factory
        self.clock = clock
        self._patient_directory = patient_directory or (
            lambda session: SqlPatientDirectory(session, clock)
        )
        self._billing_ledger = billing_ledger or (
            lambda session: SqlBillingLedger(session, clock)
        )

    @asynccontextmanager
    async def _unit_of_work(self, operation: str) -> AsyncIterator[UnitOfWork]:
        """
        Open a session and transaction for one workflow operation.

        Domain errors pass through unchanged. Version conflicts become
        ``EpisodeConflictError``; anything else raised by a collaborator is
        wrapped as ``UpstreamServiceError("<operation>: <cause>")``. In every
        failure case the transaction is rolled back.
        """
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    yield UnitOfWork(
                        session=session,
                        episodes=EpisodeStore(session),
                        patients=self._patient_directory(session),
                        billing=self._billing_ledger(session),
                    )
        except WorkflowError as e:
            logger.warning(f"{operation}: {e}")
            raise
        except StaleDataError as e:
            logger.error(f"{operation}: concurrent episode update detected")
            raise EpisodeConflictError(operation) from e
        except Exception as e:
            logger.error(f"{operation}: {e}", exc_info=True)
            raise UpstreamServiceError(f"{operation}: {e}") from e

    @staticmethod
    def _ensure_open(episode: Episode) -> None:
        if not episode.is_active:
            raise EpisodeClosedError(episode.episode_number)

    async def _allocate_episode_number(
        self, uow: UnitOfWork, episode_type: EpisodeType, now: datetime
    ) -> str:
        now_ms = epoch_milliseconds(now)
        for attempt in range(EPISODE_NUMBER_ATTEMPTS):
            candidate = generate_episode_number(episode_type, now_ms + attempt)
            if not await uow.episodes.number_taken(candidate):
                return candidate
        raise EpisodeNumberExhaustedError(episode_prefix(episode_type))

    async def _open_episode(
        self, uow: UnitOfWork, patient_id: int, episode_type: EpisodeType
    ) -> Episode:
        active = await uow.episodes.find_active_for_patient(patient_id)
        if active is not None:
            raise ActiveEpisodeExistsError(patient_id, active.episode_number)

        now = self.clock()
        episode_number = await self._allocate_episode_number(uow, episode_type, now)
        fee = consultation_fee_for(episode_type)

        episode = await uow.episodes.add(
            Episode(
                episode_number=episode_number,
                patient_id=patient_id,
                episode_type=episode_type,
                status=EpisodeStatus.REGISTERED,
                registration_date=now,
                consultation_fee=fee,
                fees_paid=False,
                prescriptions=[],
                lab_tests=[],
                services=[],
            )
        )

        await uow.billing.create_entry(
            BillingEntryCreate(
                patient_id=patient_id,
                service_type="Consultation",
                service_description=f"Medical consultation - Episode: {episode_number}",
                amount=fee,
                discount=Decimal("0.00"),
                total_amount=fee,
                payment_status=PaymentStatus.PENDING,
                episode_number=episode_number,
                notes=f"Initial consultation billing for episode {episode_number}",
            )
        )
        return episode

    # ------------------------------------------------------------------
    # Step 1: registration
    # ------------------------------------------------------------------

    async def register_patient_with_episode(
        self,
        patient_data: PatientCreate,
        episode_type: EpisodeType = EpisodeType.OUTPATIENT,
    ) -> RegistrationResult:
        """Create the patient, open their first episode and bill the consultation."""
        async with self._unit_of_work("Registration failed") as uow:
            patient = await uow.patients.create_patient(patient_data)
            episode = await self._open_episode(uow, patient.id, episode_type)
            result = RegistrationResult(
                patient=PatientResponse.model_validate(patient),
                episode=EpisodeResponse.model_validate(episode),
                status=WorkflowStage.REGISTRATION,
                next_step=REGISTRATION_NEXT_STEP,
                available_actions=list(REGISTRATION_ACTIONS),
            )

        logger.info(f"Episode {result.episode.episode_number} registered for patient {result.patient.id}")
        return result

    async def open_episode(
        self,
        patient_id: int,
        episode_type: EpisodeType = EpisodeType.OUTPATIENT,
    ) -> RegistrationResult:
        """Open a new episode for a returning patient (at most one active at a time)."""
        async with self._unit_of_work("Episode creation failed") as uow:
            patient = await uow.patients.get_patient(patient_id)
            if patient is None:
                raise PatientNotFoundError(patient_id)
            episode = await self._open_episode(uow, patient.id, episode_type)
            result = RegistrationResult(
                patient=PatientResponse.model_validate(patient),
                episode=EpisodeResponse.model_validate(episode),
                status=WorkflowStage.REGISTRATION,
                next_step=REGISTRATION_NEXT_STEP,
                available_actions=list(REGISTRATION_ACTIONS),
            )

        logger.info(f"Episode {result.episode.episode_number} opened for patient {patient_id}")
        return result

    # ------------------------------------------------------------------
    # Step 2: consultation fee
    # ------------------------------------------------------------------

    async def pay_consultation_fee(
        self,
        episode_number: str,
        payment_method: str,
        transaction_reference: Optional[str] = None,
    ) -> PaymentResult:
        async with self._unit_of_work("Payment failed") as uow:
            episode = await uow.episodes.require(episode_number)
            self._ensure_open(episode)
            if episode.fees_paid:
                raise ConsultationFeeAlreadyPaidError(episode_number)

            episode_type = episode.episode_type.value
            await uow.billing.create_entry(
                BillingEntryCreate(
                    patient_id=episode.patient_id,
                    service_type="Consultation Fee",
                    service_description=(
                        f"{episode_type.upper()} consultation fee - Episode: {episode_number}"
                    ),
                    amount=episode.consultation_fee,
                    discount=Decimal("0.00"),
                    total_amount=episode.consultation_fee,
                    payment_status=PaymentStatus.PAID,
                    payment_method=payment_method,
                    transaction_reference=transaction_reference or "",
                    episode_number=episode_number,
                    notes=f"Consultation fee payment for {episode_type} visit",
                )
            )

            episode.fees_paid = True
            # A clinician may already have called the patient in; never move back
            if episode.status == EpisodeStatus.REGISTERED:
                episode.status = EpisodeStatus.IN_QUEUE
            await uow.episodes.save(episode)

        logger.info(f"Episode {episode_number} consultation fee paid ({payment_method})")
        return PaymentResult(
            success=True,
            message=PAYMENT_MESSAGE,
            next_step=PAYMENT_NEXT_STEP,
            available_actions=list(PAYMENT_ACTIONS),
        )

    # ------------------------------------------------------------------
    # Step 3: outpatient queue
    # ------------------------------------------------------------------

    async def add_to_outpatient_queue(self, episode_number: str) -> QueuePlacement:
        """Queue a paid episode; calling it again for the same episode is a no-op."""
        async with self._unit_of_work("Queueing failed") as uow:
            episode = await uow.episodes.require(episode_number)
            self._ensure_open(episode)
            if not episode.fees_paid:
                raise ConsultationFeeNotPaidError(episode_number)

            if await uow.episodes.queue_entry(episode_number) is None:
                await uow.episodes.enqueue(
                    QueueEntry(
                        episode_number=episode_number,
                        patient_id=episode.patient_id,
                        queued_at=self.clock(),
                        priority=queue_priority_for(episode.episode_type),
                        status="waiting",
                    )
                )
                logger.info(f"Episode {episode_number} added to outpatient queue")

            position = await uow.episodes.queue_length()

        return QueuePlacement(
            queue_position=position,
            estimated_wait_time=position * MINUTES_PER_QUEUED_PATIENT,
            status=EpisodeStatus.IN_QUEUE,
        )

    async def get_outpatient_queue(self) -> list[QueueEntryResponse]:
        async with self._unit_of_work("Queue lookup failed") as uow:
            entries = await uow.episodes.queue()
            return [QueueEntryResponse.model_validate(entry) for entry in entries]

    # ------------------------------------------------------------------
    # Step 4: consultation
    # ------------------------------------------------------------------

    async def start_consultation(self, episode_number: str, doctor_id: int) -> ConsultationStarted:
        async with self._unit_of_work("Consultation start failed") as uow:
            episode = await uow.episodes.require(episode_number)
            self._ensure_open(episode)

            episode.status = EpisodeStatus.IN_CONSULTATION
            episode.doctor_id = doctor_id
            await uow.episodes.save(episode)
            await uow.episodes.dequeue(episode_number)

        logger.info(f"Episode {episode_number} called in by clinician {doctor_id}")
        return ConsultationStarted(
            status=EpisodeStatus.IN_CONSULTATION,
            available_actions=list(CONSULTATION_ACTIONS),
        )

    async def record_consultation_notes(self, episode_number: str, notes: str) -> EpisodeResponse:
        async with self._unit_of_work("Saving notes failed") as uow:
            episode = await uow.episodes.require(episode_number)
            self._ensure_open(episode)
            episode.consultation_notes = notes
            await uow.episodes.save(episode)
            return EpisodeResponse.model_validate(episode)

    # ------------------------------------------------------------------
    # Step 5: services
    # ------------------------------------------------------------------

    def _service_charge(
        self, episode: Episode, order: ServiceOrder, now: datetime
    ) -> BillingEntryCreate:
        """
        Append the order to the matching episode list and build its charge.

        Every service kind has a branch; an unknown kind is an error rather
        than a silent no-op.
        """
        episode_number = episode.episode_number
        details = order.model_dump(mode="json", exclude={"kind"}, exclude_none=True)

        if isinstance(order, LabTestOrder):
            amount = quantize_money(order.cost if order.cost is not None else DEFAULT_LAB_TEST_PRICE)
            episode.lab_tests = [
                *episode.lab_tests,
                {**details, "cost": str(amount), "ordered_at": now.isoformat(), "status": "ordered"},
            ]
            service_type = "Laboratory Test"
            description = order.test_name
            notes = f"Lab test ordered during consultation - Episode: {episode_number}"
        elif isinstance(order, PrescriptionOrder):
            amount = quantize_money(order.cost if order.cost is not None else DEFAULT_PRESCRIPTION_PRICE)
            episode.prescriptions = [
                *episode.prescriptions,
                {**details, "cost": str(amount), "prescribed_at": now.isoformat(), "status": "prescribed"},
            ]
            service_type = "Pharmacy"
            description = f"{order.medication_name} - {order.dosage}"
            notes = f"Medication prescribed during consultation - Episode: {episode_number}"
        elif isinstance(order, RadiologyOrder):
            amount = quantize_money(order.cost)
            episode.services = [
                *episode.services,
                {**details, "kind": order.kind, "cost": str(amount), "ordered_at": now.isoformat(), "status": "ordered"},
            ]
            service_type = "Radiology"
            description = order.study_name
            notes = f"Radiology study ordered during consultation - Episode: {episode_number}"
        else:
            raise UnsupportedServiceError(str(getattr(order, "kind", type(order).__name__)))

        return BillingEntryCreate(
            patient_id=episode.patient_id,
            service_type=service_type,
            service_description=description,
            amount=amount,
            discount=Decimal("0.00"),
            total_amount=amount,
            payment_status=PaymentStatus.PENDING,
            episode_number=episode_number,
            notes=notes,
        )

    async def add_service_to_episode(
        self, episode_number: str, order: ServiceOrder
    ) -> EpisodeUpdateResult:
        """Attach a lab test, prescription or radiology study and bill it (pending)."""
        async with self._unit_of_work("Service addition failed") as uow:
            episode = await uow.episodes.require(episode_number)
            self._ensure_open(episode)

            charge = self._service_charge(episode, order, self.clock())
            await uow.episodes.save(episode)
            await uow.billing.create_entry(charge)
            result = EpisodeUpdateResult(
                success=True,
                message=f"{order.kind} added to episode successfully",
                episode=EpisodeResponse.model_validate(episode),
            )

        logger.info(f"Episode {episode_number}: {order.kind} added ({charge.total_amount})")
        return result

    # ------------------------------------------------------------------
    # Step 6: discharge
    # ------------------------------------------------------------------

    async def complete_episode(
        self, episode_number: str, discharge_notes: Optional[str] = None
    ) -> EpisodeUpdateResult:
        async with self._unit_of_work("Episode completion failed") as uow:
            episode = await uow.episodes.require(episode_number)
            self._ensure_open(episode)

            episode.status = EpisodeStatus.COMPLETED
            episode.discharge_notes = discharge_notes
            episode.completed_at = self.clock()
            await uow.episodes.save(episode)
            await uow.episodes.dequeue(episode_number)
            result = EpisodeUpdateResult(
                success=True,
                message="Episode completed successfully",
                episode=EpisodeResponse.model_validate(episode),
            )

        logger.info(f"Episode {episode_number} completed")
        return result

    # ------------------------------------------------------------------
    # Status views
    # ------------------------------------------------------------------

    async def get_episode(self, episode_number: str) -> EpisodeResponse:
        async with self._unit_of_work("Episode lookup failed") as uow:
            episode = await uow.episodes.require(episode_number, for_update=False)
            return EpisodeResponse.model_validate(episode)

    async def get_patient_workflow(self, patient_id: int) -> Optional[PatientWorkflow]:
        """
        Map the patient's active episode to a workflow stage.

        Returns None when the patient has no non-completed episode.
        """
        async with self._unit_of_work("Workflow lookup failed") as uow:
            episode = await uow.episodes.find_active_for_patient(patient_id)
            if episode is None:
                return None

            patient = await uow.patients.get_patient(patient_id)
            if patient is None:
                raise PatientNotFoundError(patient_id)

            stage = describe_stage(episode.status)
            return PatientWorkflow(
                patient=PatientResponse.model_validate(patient),
                current_episode=EpisodeResponse.model_validate(episode),
                status=stage.stage,
                next_step=stage.next_step,
                available_actions=list(stage.available_actions),
            )

    async def list_active_episodes(self) -> list[EpisodeFlowItem]:
        """Rows for the patient-flow board: every non-completed episode."""
        async with self._unit_of_work("Patient flow lookup failed") as uow:
            items = []
            for episode in await uow.episodes.list_active():
                patient = await uow.patients.get_patient(episode.patient_id)
                current_step, next_action = flow_step(episode.status, episode.fees_paid)
                items.append(
                    EpisodeFlowItem(
                        patient_id=episode.patient_id,
                        patient_name=(
                            f"{patient.first_name} {patient.last_name}" if patient else "Unknown"
                        ),
                        episode_number=episode.episode_number,
                        episode_type=episode.episode_type,
                        status=episode.status,
                        registration_time=episode.registration_date,
                        consultation_fee=episode.consultation_fee,
                        fees_paid=episode.fees_paid,
                        current_step=current_step,
                        next_action=next_action,
                    )
                )
            return items
