"""Patient domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_email, validate_phone


class PatientCreate(BaseModel):
    """Schema for registering a patient"""

    userId: str
    name: str
    email: Optional[str] = None
    phone: str
    dateOfBirth: Optional[date] = None
    gender: Optional[Literal["male", "female", "other"]] = None
    address: Optional[str] = None
    medicalHistory: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)


class PatientUpdate(BaseModel):
    """Schema for updating an existing patient's profile"""

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    dateOfBirth: Optional[date] = None
    gender: Optional[Literal["male", "female", "other"]] = None
    address: Optional[str] = None
    medicalHistory: Optional[str] = None
    status: Optional[Literal["active", "inactive"]] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)


class PatientResponse(BaseModel):
    """Schema for patient response"""

    id: int
    userId: str
    name: str
    email: Optional[str]
    phone: str
    dateOfBirth: Optional[date] = None
    gender: Optional[str] = None
    address: Optional[str] = None
    medicalHistory: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, patient) -> "PatientResponse":
        return cls(
            id=patient.id,
            userId=patient.user_id,
            name=patient.name,
            email=patient.email,
            phone=patient.phone,
            dateOfBirth=patient.date_of_birth,
            gender=patient.gender,
            address=patient.address,
            medicalHistory=patient.medical_history,
            status=patient.status,
            created_at=patient.created_at,
        )
