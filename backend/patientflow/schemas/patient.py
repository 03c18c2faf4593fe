"""Pydantic schemas for Patient API."""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator


class PatientBase(BaseModel):
    """Fields captured by the front-desk registration form."""

    first_name: str = Field(..., min_length=1, max_length=100, description="Baptismal / given name")
    middle_name: Optional[str] = Field(None, max_length=100, description="Other name")
    last_name: str = Field(..., min_length=1, max_length=100, description="Surname")
    national_id: Optional[str] = Field(None, max_length=50)
    date_of_birth: date
    gender: str = Field(..., min_length=1, max_length=20, description="male, female, other")
    blood_type: Optional[str] = Field(None, max_length=5)
    phone: str = Field(..., min_length=1, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    address: str = Field(..., min_length=1)
    emergency_contact_name: str = Field(..., min_length=1, max_length=200)
    emergency_contact_phone: str = Field(..., min_length=1, max_length=50)
    emergency_contact_relationship: Optional[str] = Field(None, max_length=50)
    occupation: Optional[str] = Field(None, max_length=100)
    insurance_provider: Optional[str] = Field(None, max_length=100)
    policy_number: Optional[str] = Field(None, max_length=100)
    medical_history: Optional[str] = None
    allergies: Optional[str] = None


class PatientCreate(PatientBase):
    """Schema for registering a new patient."""


class PatientUpdate(BaseModel):
    """Partial update; only supplied fields are written."""

    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    middle_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    national_id: Optional[str] = Field(None, max_length=50)
    date_of_birth: Optional[date] = None
    gender: Optional[str] = Field(None, min_length=1, max_length=20)
    blood_type: Optional[str] = Field(None, max_length=5)
    phone: Optional[str] = Field(None, min_length=1, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = Field(None, min_length=1)
    emergency_contact_name: Optional[str] = Field(None, min_length=1, max_length=200)
    emergency_contact_phone: Optional[str] = Field(None, min_length=1, max_length=50)
    emergency_contact_relationship: Optional[str] = Field(None, max_length=50)
    occupation: Optional[str] = Field(None, max_length=100)
    insurance_provider: Optional[str] = Field(None, max_length=100)
    policy_number: Optional[str] = Field(None, max_length=100)
    medical_history: Optional[str] = None
    allergies: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator(
        "first_name",
        "last_name",
        "date_of_birth",
        "gender",
        "phone",
        "address",
        "emergency_contact_name",
        "emergency_contact_phone",
        "is_active",
    )
    @classmethod
    def reject_null(cls, value, info: ValidationInfo):
        """Required columns may be omitted but never cleared."""
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value


class PatientResponse(PatientBase):
    """Patient as returned by the API."""

    id: int = Field(..., description="Patient primary key")
    patient_code: str = Field(..., description="Clinic patient code")
    is_active: bool
    registration_date: datetime

    class Config:
        """Pydantic config."""

        from_attributes = True
