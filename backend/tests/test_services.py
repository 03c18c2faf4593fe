"""Tests for adding lab tests, prescriptions and radiology to an episode."""

from decimal import Decimal
from typing import Literal

import pytest
import pytest_asyncio
from pydantic import BaseModel, ValidationError
from sqlalchemy import select

from conftest import make_patient
from patientflow.core.exceptions import EpisodeClosedError, UnsupportedServiceError
from patientflow.models import BillingRecord, EpisodeStatus, PaymentStatus
from patientflow.schemas.episode import LabTestOrder, PrescriptionOrder, RadiologyOrder, ServiceOrderRequest


async def charges(db_session, episode_number: str, service_type: str) -> list[BillingRecord]:
    result = await db_session.execute(
        select(BillingRecord)
        .where(
            BillingRecord.episode_number == episode_number,
            BillingRecord.service_type == service_type,
        )
        .order_by(BillingRecord.id)
    )
    return list(result.scalars().all())


@pytest_asyncio.fixture
async def consulting_episode(manager) -> str:
    registration = await manager.register_patient_with_episode(make_patient())
    number = registration.episode.episode_number
    await manager.pay_consultation_fee(number, "cash")
    await manager.add_to_outpatient_queue(number)
    await manager.start_consultation(number, doctor_id=7)
    return number


@pytest.mark.asyncio
@pytest.mark.workflow
async def test_lab_test_default_price(manager, db_session, consulting_episode):
    number = consulting_episode

    result = await manager.add_service_to_episode(
        number, LabTestOrder(test_name="Full blood count", test_type="blood")
    )

    assert result.success is True
    assert result.message == "lab-test added to episode successfully"
    lab = result.episode.lab_tests
    assert len(lab) == 1
    assert lab[0]["test_name"] == "Full blood count"
    assert lab[0]["test_type"] == "blood"
    assert lab[0]["urgency"] == "routine"
    assert lab[0]["cost"] == "25.00"
    assert lab[0]["status"] == "ordered"
    assert "ordered_at" in lab[0]

    [entry] = await charges(db_session, number, "Laboratory Test")
    assert entry.service_description == "Full blood count"
    assert entry.amount == Decimal("25.00")
    assert entry.total_amount == Decimal("25.00")
    assert entry.discount == Decimal("0.00")
    assert entry.payment_status == PaymentStatus.PENDING
    assert entry.notes == f"Lab test ordered during consultation - Episode: {number}"


@pytest.mark.asyncio
@pytest.mark.workflow
async def test_prescription_default_price(manager, db_session, consulting_episode):
    number = consulting_episode

    result = await manager.add_service_to_episode(
        number,
        PrescriptionOrder(medication_name="Amoxicillin", dosage="500mg", frequency="3x daily", duration="7 days"),
    )

    assert result.message == "prescription added to episode successfully"
    [prescription] = result.episode.prescriptions
    assert prescription["medication_name"] == "Amoxicillin"
    assert prescription["cost"] == "15.00"
    assert prescription["status"] == "prescribed"
    assert "prescribed_at" in prescription

    [entry] = await charges(db_session, number, "Pharmacy")
    assert entry.service_description == "Amoxicillin - 500mg"
    assert entry.total_amount == Decimal("15.00")
    assert entry.notes == f"Medication prescribed during consultation - Episode: {number}"


@pytest.mark.asyncio
@pytest.mark.workflow
async def test_explicit_cost_overrides_default(manager, db_session, consulting_episode):
    number = consulting_episode

    await manager.add_service_to_episode(
        number, PrescriptionOrder(medication_name="Artemether", dosage="80mg", cost=Decimal("40.00"))
    )
    await manager.add_service_to_episode(
        number, LabTestOrder(test_name="Malaria RDT", cost=Decimal("12.50"))
    )

    [pharmacy] = await charges(db_session, number, "Pharmacy")
    [lab] = await charges(db_session, number, "Laboratory Test")
    assert pharmacy.total_amount == Decimal("40.00")
    assert lab.total_amount == Decimal("12.50")


@pytest.mark.asyncio
@pytest.mark.workflow
async def test_services_are_appended_in_order(manager, consulting_episode):
    number = consulting_episode

    await manager.add_service_to_episode(number, LabTestOrder(test_name="Urinalysis"))
    await manager.add_service_to_episode(number, LabTestOrder(test_name="Blood culture"))

    episode = await manager.get_episode(number)
    assert [test["test_name"] for test in episode.lab_tests] == ["Urinalysis", "Blood culture"]
    # Adding services does not move the episode to "treatment"
    assert episode.status == EpisodeStatus.IN_CONSULTATION


@pytest.mark.asyncio
@pytest.mark.workflow
async def test_radiology_is_recorded_and_billed(manager, db_session, consulting_episode):
    number = consulting_episode

    result = await manager.add_service_to_episode(
        number, RadiologyOrder(study_name="Chest X-ray", body_part="chest", cost=Decimal("60.00"))
    )

    assert result.message == "radiology added to episode successfully"
    [study] = result.episode.services
    assert study["kind"] == "radiology"
    assert study["study_name"] == "Chest X-ray"
    assert study["cost"] == "60.00"

    [entry] = await charges(db_session, number, "Radiology")
    assert entry.service_description == "Chest X-ray"
    assert entry.total_amount == Decimal("60.00")


def test_radiology_requires_cost():
    with pytest.raises(ValidationError):
        RadiologyOrder(study_name="Abdominal ultrasound")


def test_service_request_is_dispatched_on_kind():
    request = ServiceOrderRequest.model_validate(
        {"order": {"kind": "prescription", "medication_name": "Paracetamol", "dosage": "1g"}}
    )
    assert isinstance(request.order, PrescriptionOrder)

    with pytest.raises(ValidationError):
        ServiceOrderRequest.model_validate({"order": {"kind": "physiotherapy"}})


class PhysiotherapyOrder(BaseModel):
    kind: Literal["physiotherapy"] = "physiotherapy"
    sessions: int = 4


@pytest.mark.asyncio
@pytest.mark.workflow
async def test_unknown_service_kind_is_rejected(manager, db_session, consulting_episode):
    number = consulting_episode

    with pytest.raises(UnsupportedServiceError):
        await manager.add_service_to_episode(number, PhysiotherapyOrder())

    episode = await manager.get_episode(number)
    assert episode.services == []
    assert await charges(db_session, number, "physiotherapy") == []


@pytest.mark.asyncio
@pytest.mark.workflow
async def test_completed_episode_rejects_services(manager, db_session, consulting_episode):
    number = consulting_episode
    await manager.complete_episode(number, "Discharged")

    with pytest.raises(EpisodeClosedError):
        await manager.add_service_to_episode(number, LabTestOrder(test_name="Full blood count"))

    assert await charges(db_session, number, "Laboratory Test") == []
