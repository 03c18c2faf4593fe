"""Tests for episode number generation and allocation."""

import re
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from conftest import FakeClock, make_patient
from patientflow.core.exceptions import EpisodeNumberExhaustedError
from patientflow.models import EpisodeType, Patient
from patientflow.services.workflow import (
    EPISODE_NUMBER_ATTEMPTS,
    WorkflowManager,
    epoch_milliseconds,
    generate_episode_number,
)

EPISODE_NUMBER_PATTERN = re.compile(r"^(OP|IP|EM)\d{6}$")

# 1_000_000_000_123 ms since the epoch
BILLENNIUM = datetime(2001, 9, 9, 1, 46, 40, 123000, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "episode_type, expected",
    [
        (EpisodeType.OUTPATIENT, "OP000123"),
        (EpisodeType.INPATIENT, "IP000123"),
        (EpisodeType.EMERGENCY, "EM000123"),
    ],
)
def test_prefix_and_six_time_digits(episode_type, expected):
    """Leading zeros in the time suffix are preserved."""
    assert generate_episode_number(episode_type, 1_000_000_000_123) == expected


def test_suffix_is_last_six_digits_of_milliseconds():
    assert generate_episode_number(EpisodeType.OUTPATIENT, 1760781234567) == "OP234567"


def test_epoch_milliseconds_is_exact():
    assert epoch_milliseconds(BILLENNIUM) == 1_000_000_000_123
    # Naive datetimes are read as UTC
    assert epoch_milliseconds(BILLENNIUM.replace(tzinfo=None)) == 1_000_000_000_123


@pytest.mark.asyncio
@pytest.mark.workflow
async def test_registration_uses_clock_milliseconds(session_factory):
    manager = WorkflowManager(session_factory, clock=FakeClock(BILLENNIUM, step=timedelta(0)))

    result = await manager.register_patient_with_episode(make_patient(), EpisodeType.OUTPATIENT)

    assert result.episode.episode_number == "OP000123"
    assert EPISODE_NUMBER_PATTERN.match(result.episode.episode_number)


@pytest.mark.asyncio
@pytest.mark.workflow
async def test_colliding_number_moves_to_next_millisecond(session_factory):
    manager = WorkflowManager(session_factory, clock=FakeClock(BILLENNIUM, step=timedelta(0)))

    first = await manager.register_patient_with_episode(make_patient(first_name="Amina"))
    second = await manager.register_patient_with_episode(make_patient(first_name="Brian"))

    assert first.episode.episode_number == "OP000123"
    assert second.episode.episode_number == "OP000124"


@pytest.mark.asyncio
@pytest.mark.workflow
async def test_allocation_gives_up_after_bounded_attempts(session_factory, db_session):
    manager = WorkflowManager(session_factory, clock=FakeClock(BILLENNIUM, step=timedelta(0)))

    for i in range(EPISODE_NUMBER_ATTEMPTS):
        await manager.register_patient_with_episode(make_patient(phone=f"+2547000000{i}"))

    with pytest.raises(EpisodeNumberExhaustedError):
        await manager.register_patient_with_episode(make_patient(phone="+254799999999"))

    # The failed registration left no patient behind
    count = await db_session.execute(select(func.count(Patient.id)))
    assert count.scalar_one() == EPISODE_NUMBER_ATTEMPTS


@pytest.mark.asyncio
@pytest.mark.workflow
@pytest.mark.parametrize("episode_type", list(EpisodeType))
async def test_every_episode_type_gets_a_well_formed_number(manager, episode_type):
    result = await manager.register_patient_with_episode(make_patient(), episode_type)

    number = result.episode.episode_number
    assert len(number) == 8
    assert EPISODE_NUMBER_PATTERN.match(number)
    assert number[:2] == {"outpatient": "OP", "inpatient": "IP", "emergency": "EM"}[episode_type.value]
