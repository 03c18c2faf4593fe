"""Billing model - single line-item charges."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Enum as SQLEnum
from sqlalchemy import ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from patientflow.models.base import BaseModel


class PaymentStatus(str, Enum):
    """Payment state of a billing line."""

    PENDING = "pending"
    PAID = "paid"
    PARTIAL = "partial"
    CANCELLED = "cancelled"


class BillingRecord(BaseModel):
    """
    Billing record.

    ``bill_id`` (BILL-<year>-<id>) is assigned once the row id is known.
    """

    __tablename__ = "billing"
    __table_args__ = (
        Index("idx_billing_patient_status", "patient_id", "payment_status"),
    )

    bill_id: Mapped[Optional[str]] = mapped_column(
        String(30),
        nullable=True,
        unique=True,
        comment="Human-readable bill number",
    )

    patient_id: Mapped[int] = mapped_column(
        ForeignKey("patients.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    episode_number: Mapped[Optional[str]] = mapped_column(
        String(8),
        nullable=True,
        index=True,
        comment="Episode that generated this charge",
    )

    service_type: Mapped[str] = mapped_column(String(100), nullable=False)
    service_description: Mapped[str] = mapped_column(String(500), nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    discount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    payment_status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(PaymentStatus, name="payment_status", native_enum=False, create_constraint=True, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    payment_method: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        comment="cash, card, insurance, bank_transfer, mobile_money",
    )
    transaction_reference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    payment_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    insurance_claimed: Mapped[bool] = mapped_column(default=False, nullable=False)
    insurance_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<BillingRecord {self.bill_id} {self.service_type} {self.total_amount} {self.payment_status.value}>"
