"""Patient registry API endpoints."""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from patientflow.api.dependencies import get_db
from patientflow.schemas.patient import PatientCreate, PatientResponse, PatientUpdate
from patientflow.services.patient_registry import SqlPatientDirectory

router = APIRouter(prefix="/patients")


@router.get(
    "",
    response_model=list[PatientResponse],
    summary="List or search patients",
)
async def list_patients(
    db: Annotated[AsyncSession, Depends(get_db)],
    search: Annotated[Optional[str], Query(min_length=1, description="Name, code, phone or national id")] = None,
) -> list[PatientResponse]:
    directory = SqlPatientDirectory(db)
    if search:
        patients = await directory.search_patients(search)
    else:
        patients = await directory.list_patients()
    return [PatientResponse.model_validate(patient) for patient in patients]


@router.post(
    "",
    response_model=PatientResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a patient without opening an episode",
)
async def create_patient(
    data: PatientCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PatientResponse:
    patient = await SqlPatientDirectory(db).create_patient(data)
    await db.commit()
    return PatientResponse.model_validate(patient)


@router.get("/{patient_id}", response_model=PatientResponse)
async def get_patient(
    patient_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PatientResponse:
    patient = await SqlPatientDirectory(db).require_patient(patient_id)
    return PatientResponse.model_validate(patient)


@router.put("/{patient_id}", response_model=PatientResponse)
async def update_patient(
    patient_id: int,
    data: PatientUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PatientResponse:
    patient = await SqlPatientDirectory(db).update_patient(patient_id, data)
    await db.commit()
    return PatientResponse.model_validate(patient)
