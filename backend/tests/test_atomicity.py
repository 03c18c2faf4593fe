"""Tests for all-or-nothing workflow operations and error wrapping."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm.exc import StaleDataError

from conftest import make_patient
from patientflow.core.exceptions import (
    EpisodeConflictError,
    EpisodeNotFoundError,
    UpstreamServiceError,
)
from patientflow.models import BillingRecord, Episode, EpisodeStatus, Patient
from patientflow.services.billing import SqlBillingLedger
from patientflow.services.episode_store import EpisodeStore
from patientflow.services.workflow import WorkflowManager


class OfflineLedger:
    """Billing ledger whose backend is unreachable."""

    async def create_entry(self, entry):
        raise ConnectionError("billing ledger offline")


class LedgerFailingOnPayment:
    """Accepts pending charges, fails on the paid consultation fee."""

    def __init__(self, session):
        self.inner = SqlBillingLedger(session)

    async def create_entry(self, entry):
        if entry.service_type == "Consultation Fee":
            raise ConnectionError("card terminal timeout")
        return await self.inner.create_entry(entry)


async def count(db_session, column) -> int:
    result = await db_session.execute(select(func.count(column)))
    return result.scalar_one()


@pytest.mark.asyncio
@pytest.mark.workflow
async def test_failed_billing_rolls_back_registration(session_factory, db_session, clock):
    manager = WorkflowManager(session_factory, billing_ledger=lambda session: OfflineLedger(), clock=clock)

    with pytest.raises(UpstreamServiceError) as exc_info:
        await manager.register_patient_with_episode(make_patient())

    assert exc_info.value.message == "Registration failed: billing ledger offline"
    assert exc_info.value.status_code == 502
    assert isinstance(exc_info.value.__cause__, ConnectionError)

    assert await count(db_session, Patient.id) == 0
    assert await count(db_session, Episode.id) == 0
    assert await count(db_session, BillingRecord.id) == 0


@pytest.mark.asyncio
@pytest.mark.workflow
async def test_failed_payment_leaves_episode_unpaid(session_factory, clock):
    manager = WorkflowManager(session_factory, billing_ledger=LedgerFailingOnPayment, clock=clock)
    registration = await manager.register_patient_with_episode(make_patient())
    number = registration.episode.episode_number

    with pytest.raises(UpstreamServiceError, match="^Payment failed: card terminal timeout$"):
        await manager.pay_consultation_fee(number, "card")

    episode = await manager.get_episode(number)
    assert episode.fees_paid is False
    assert episode.status == EpisodeStatus.REGISTERED
    assert episode.version == 1


@pytest.mark.asyncio
@pytest.mark.workflow
async def test_domain_errors_are_not_wrapped(manager):
    with pytest.raises(EpisodeNotFoundError):
        await manager.start_consultation("OP123456", doctor_id=1)


@pytest.mark.asyncio
@pytest.mark.workflow
async def test_stale_episode_update_is_detected(manager, session_factory, patient_data):
    registration = await manager.register_patient_with_episode(patient_data)
    number = registration.episode.episode_number

    async with session_factory() as first, session_factory() as second:
        stale = await EpisodeStore(first).require(number)
        fresh = await EpisodeStore(second).require(number)

        fresh.consultation_notes = "written by the second clerk"
        await EpisodeStore(second).save(fresh)
        await second.commit()

        stale.consultation_notes = "written by the first clerk"
        with pytest.raises(StaleDataError):
            await EpisodeStore(first).save(stale)


@pytest.mark.asyncio
@pytest.mark.workflow
async def test_version_conflict_maps_to_conflict_error(manager):
    with pytest.raises(EpisodeConflictError) as exc_info:
        async with manager._unit_of_work("Payment failed"):
            raise StaleDataError("UPDATE statement on table 'episodes' expected to update 1 row(s); 0 were matched.")

    assert exc_info.value.status_code == 409
    assert exc_info.value.message == "Payment failed: episode was modified concurrently"
