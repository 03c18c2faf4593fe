"""Billing ledger API endpoints."""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from patientflow.api.dependencies import get_db
from patientflow.schemas.billing import (
    BillingEntryCreate,
    BillingEntryResponse,
    BillingEntryUpdate,
)
from patientflow.services.billing import SqlBillingLedger

router = APIRouter(prefix="/billing")


@router.get("", response_model=list[BillingEntryResponse], summary="List billing entries")
async def list_billing_entries(
    db: Annotated[AsyncSession, Depends(get_db)],
    patient_id: Annotated[Optional[int], Query()] = None,
    episode_number: Annotated[Optional[str], Query(max_length=8)] = None,
) -> list[BillingEntryResponse]:
    records = await SqlBillingLedger(db).list_entries(
        patient_id=patient_id, episode_number=episode_number
    )
    return [BillingEntryResponse.model_validate(record) for record in records]


@router.post(
    "",
    response_model=BillingEntryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a manual charge",
)
async def create_billing_entry(
    entry: BillingEntryCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BillingEntryResponse:
    record = await SqlBillingLedger(db).create_entry(entry)
    await db.commit()
    return BillingEntryResponse.model_validate(record)


@router.put("/{billing_id}", response_model=BillingEntryResponse)
async def update_billing_entry(
    billing_id: int,
    update: BillingEntryUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BillingEntryResponse:
    record = await SqlBillingLedger(db).update_entry(billing_id, update)
    await db.commit()
    return BillingEntryResponse.model_validate(record)
