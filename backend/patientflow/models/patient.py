"""Patient model - Patient demographics and clinic patient code."""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import Date, DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from patientflow.models.base import BaseModel, utcnow


class Patient(BaseModel):
    """
    Patient model.

    Stores patient demographics with PII, keyed by an integer id and a
    human-readable clinic code (e.g. CMH-202610JMD004).
    """

    __tablename__ = "patients"

    patient_code: Mapped[str] = mapped_column(
        String(40),
        nullable=False,
        unique=True,
        index=True,
        comment="Clinic patient code (CMH-YYYYMM<initials><seq>)",
    )

    # Identity
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, comment="Given name (PII)")
    middle_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, comment="Surname (PII)")
    national_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    date_of_birth: Mapped[date] = mapped_column(Date, nullable=False, comment="Date of birth (PII)")
    gender: Mapped[str] = mapped_column(String(20), nullable=False)
    blood_type: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)

    # Contact information (PII)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    address: Mapped[str] = mapped_column(Text, nullable=False)

    # Emergency contact
    emergency_contact_name: Mapped[str] = mapped_column(String(200), nullable=False)
    emergency_contact_phone: Mapped[str] = mapped_column(String(50), nullable=False)
    emergency_contact_relationship: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Social / insurance
    occupation: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    insurance_provider: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    policy_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Clinical background
    medical_history: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    allergies: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(
        default=True,
        nullable=False,
        comment="Whether patient record is active",
    )

    registration_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        index=True,
        comment="When the patient was first registered",
    )

    def __repr__(self) -> str:
        """String representation (avoid PII in logs)."""
        return f"<Patient id={self.id} code={self.patient_code}>"
