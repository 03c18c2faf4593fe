"""Pydantic schemas for Billing API."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from patientflow.models.billing import PaymentStatus


class BillingEntryCreate(BaseModel):
    """A line-item charge submitted to the billing ledger."""

    patient_id: int = Field(..., description="Patient being charged")
    service_type: str = Field(..., min_length=1, max_length=100, description="Consultation, Pharmacy, ...")
    service_description: str = Field(..., min_length=1, max_length=500)
    amount: Decimal = Field(..., ge=0, decimal_places=2)
    discount: Decimal = Field(Decimal("0.00"), ge=0, decimal_places=2)
    total_amount: Decimal = Field(..., ge=0, decimal_places=2)
    payment_status: PaymentStatus = Field(PaymentStatus.PENDING)
    payment_method: Optional[str] = Field(None, max_length=50)
    transaction_reference: Optional[str] = Field(None, max_length=100)
    episode_number: Optional[str] = Field(None, max_length=8)
    notes: Optional[str] = None


class BillingEntryUpdate(BaseModel):
    """Partial update used by the cashier (collect, discount, cancel)."""

    amount: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    discount: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    total_amount: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    payment_status: Optional[PaymentStatus] = None
    payment_method: Optional[str] = Field(None, max_length=50)
    transaction_reference: Optional[str] = Field(None, max_length=100)
    payment_date: Optional[datetime] = None
    insurance_claimed: Optional[bool] = None
    insurance_amount: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    notes: Optional[str] = None

    @field_validator(
        "amount",
        "discount",
        "total_amount",
        "payment_status",
        "insurance_claimed",
        "insurance_amount",
    )
    @classmethod
    def reject_null(cls, value, info: ValidationInfo):
        """Ledger amounts and flags may be omitted but never cleared."""
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value


class BillingEntryResponse(BaseModel):
    """Billing record as returned by the API."""

    id: int
    bill_id: Optional[str]
    patient_id: int
    episode_number: Optional[str]
    service_type: str
    service_description: str
    amount: Decimal
    discount: Decimal
    total_amount: Decimal
    payment_status: PaymentStatus
    payment_method: Optional[str]
    transaction_reference: Optional[str]
    payment_date: Optional[datetime]
    insurance_claimed: bool
    insurance_amount: Decimal
    notes: Optional[str]
    created_at: datetime

    class Config:
        """Pydantic config."""

        from_attributes = True
