"""Patient directory: registration, lookup and search of patient records."""

import logging
from datetime import datetime
from typing import Callable, Optional, Protocol

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from patientflow.core.config import settings
from patientflow.core.exceptions import PatientNotFoundError
from patientflow.models.base import utcnow
from patientflow.models.patient import Patient
from patientflow.schemas.patient import PatientCreate, PatientUpdate

logger = logging.getLogger(__name__)


class PatientDirectory(Protocol):
    """Capability the workflow core needs from the patient registry."""

    async def create_patient(self, data: PatientCreate) -> Patient: ...

    async def get_patient(self, patient_id: int) -> Optional[Patient]: ...


def generate_patient_code(
    first_name: str,
    middle_name: Optional[str],
    last_name: str,
    sequence: int,
    now: datetime,
    prefix: str = "CMH",
) -> str:
    """
    Build a clinic patient code.

    Format: ``<prefix>-<YYYY><MM><first initial><middle initial?><last initial><seq:03>``
    where ``seq`` is the patient's position among this month's registrations.

    Example:
        >>> generate_patient_code("Jane", "Mumbi", "Doe", 4, datetime(2026, 10, 1))
        'CMH-202610JMD004'
    """
    initials = first_name[:1].upper()
    if middle_name:
        initials += middle_name[:1].upper()
    initials += last_name[:1].upper()
    return f"{prefix}-{now.year}{now.month:02d}{initials}{sequence:03d}"


class SqlPatientDirectory:
    """Patient directory backed by the ``patients`` table of the current session."""

    def __init__(
        self,
        session: AsyncSession,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.session = session
        self.clock = clock

    async def _registrations_this_month(self, now: datetime) -> int:
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        result = await self.session.execute(
            select(func.count(Patient.id)).where(Patient.registration_date >= month_start)
        )
        return result.scalar_one()

    async def create_patient(self, data: PatientCreate) -> Patient:
        """Insert a patient and assign the next monthly patient code."""
        now = self.clock()
        sequence = await self._registrations_this_month(now) + 1
        patient = Patient(
            **data.model_dump(),
            patient_code=generate_patient_code(
                data.first_name,
                data.middle_name,
                data.last_name,
                sequence,
                now,
                prefix=settings.PATIENT_CODE_PREFIX,
            ),
            registration_date=now,
            is_active=True,
        )
        self.session.add(patient)
        await self.session.flush()

        logger.info(f"Registered patient {patient.id} ({patient.patient_code})")
        return patient

    async def get_patient(self, patient_id: int) -> Optional[Patient]:
        return await self.session.get(Patient, patient_id)

    async def require_patient(self, patient_id: int) -> Patient:
        patient = await self.get_patient(patient_id)
        if patient is None:
            raise PatientNotFoundError(patient_id)
        return patient

    async def list_patients(self) -> list[Patient]:
        result = await self.session.execute(select(Patient).order_by(Patient.id))
        return list(result.scalars().all())

    async def search_patients(self, term: str) -> list[Patient]:
        """Case-insensitive match on names, patient code, phone and national id."""
        pattern = f"%{term.strip()}%"
        result = await self.session.execute(
            select(Patient)
            .where(
                or_(
                    Patient.first_name.ilike(pattern),
                    Patient.middle_name.ilike(pattern),
                    Patient.last_name.ilike(pattern),
                    Patient.patient_code.ilike(pattern),
                    Patient.phone.ilike(pattern),
                    Patient.national_id.ilike(pattern),
                )
            )
            .order_by(Patient.last_name, Patient.first_name)
        )
        return list(result.scalars().all())

    async def update_patient(self, patient_id: int, data: PatientUpdate) -> Patient:
        patient = await self.require_patient(patient_id)
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(patient, key, value)
        await self.session.flush()
        return patient
