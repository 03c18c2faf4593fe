"""Billing ledger: line-item charges raised by the front desk and the workflow."""

import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Optional, Protocol, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from patientflow.core.exceptions import BillingRecordNotFoundError
from patientflow.models.base import utcnow
from patientflow.models.billing import BillingRecord, PaymentStatus
from patientflow.schemas.billing import BillingEntryCreate, BillingEntryUpdate

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def quantize_money(value: Union[Decimal, int, str]) -> Decimal:
    """Round a currency amount to two decimal places."""
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def format_bill_id(record_id: int, year: int) -> str:
    return f"BILL-{year}-{record_id:04d}"


class BillingLedger(Protocol):
    """Capability the workflow core needs from billing."""

    async def create_entry(self, entry: BillingEntryCreate) -> BillingRecord: ...


class SqlBillingLedger:
    """Billing ledger backed by the ``billing`` table of the current session."""

    def __init__(
        self,
        session: AsyncSession,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.session = session
        self.clock = clock

    async def create_entry(self, entry: BillingEntryCreate) -> BillingRecord:
        """
        Record a charge.

        Paid entries are stamped with the payment date. The bill number needs
        the row id, so it is assigned after the first flush.
        """
        now = self.clock()
        record = BillingRecord(
            patient_id=entry.patient_id,
            episode_number=entry.episode_number,
            service_type=entry.service_type,
            service_description=entry.service_description,
            amount=quantize_money(entry.amount),
            discount=quantize_money(entry.discount),
            total_amount=quantize_money(entry.total_amount),
            payment_status=entry.payment_status,
            payment_method=entry.payment_method or None,
            transaction_reference=entry.transaction_reference or None,
            payment_date=now if entry.payment_status == PaymentStatus.PAID else None,
            insurance_claimed=False,
            insurance_amount=Decimal("0.00"),
            notes=entry.notes,
        )
        self.session.add(record)
        await self.session.flush()

        record.bill_id = format_bill_id(record.id, now.year)
        await self.session.flush()

        logger.info(
            f"Billing {record.bill_id}: {record.service_type} {record.total_amount} "
            f"({record.payment_status.value}) episode={record.episode_number}"
        )
        return record

    async def get_entry(self, billing_id: int) -> Optional[BillingRecord]:
        return await self.session.get(BillingRecord, billing_id)

    async def list_entries(
        self,
        patient_id: Optional[int] = None,
        episode_number: Optional[str] = None,
    ) -> list[BillingRecord]:
        stmt = select(BillingRecord).order_by(BillingRecord.id)
        if patient_id is not None:
            stmt = stmt.where(BillingRecord.patient_id == patient_id)
        if episode_number is not None:
            stmt = stmt.where(BillingRecord.episode_number == episode_number)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def update_entry(self, billing_id: int, update: BillingEntryUpdate) -> BillingRecord:
        record = await self.get_entry(billing_id)
        if record is None:
            raise BillingRecordNotFoundError(billing_id)

        changes = update.model_dump(exclude_unset=True)
        for key in ("amount", "discount", "total_amount", "insurance_amount"):
            if changes.get(key) is not None:
                changes[key] = quantize_money(changes[key])
        for key, value in changes.items():
            setattr(record, key, value)

        if record.payment_status == PaymentStatus.PAID and record.payment_date is None:
            record.payment_date = self.clock()

        await self.session.flush()
        return record
