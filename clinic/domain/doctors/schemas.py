"""Doctor domain schemas - Pydantic models for validation"""

from datetime import datetime, time
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...shared.validators import validate_email, validate_phone, validate_working_days

DoctorStatus = Literal["active", "inactive", "on_leave"]


class DoctorCreate(BaseModel):
    """Schema for creating a new doctor"""

    userId: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    specialization: str
    qualification: Optional[str] = None
    consultationFee: float = Field(0.0, ge=0)
    workingDays: list[str]
    workStart: time
    workEnd: time
    breakStart: Optional[time] = None
    breakEnd: Optional[time] = None
    slotMinutes: Optional[int] = Field(None, gt=0, le=480)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("workingDays")
    @classmethod
    def check_working_days(cls, v):
        return validate_working_days(v)

    @model_validator(mode="after")
    def check_hours(self):
        if self.workEnd <= self.workStart:
            raise ValueError("workEnd must be after workStart")
        if (self.breakStart is None) != (self.breakEnd is None):
            raise ValueError("breakStart and breakEnd must be given together")
        if self.breakStart is not None and self.breakEnd <= self.breakStart:
            raise ValueError("breakEnd must be after breakStart")
        return self


class DoctorUpdate(BaseModel):
    """Schema for updating availability or profile of an existing doctor"""

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    specialization: Optional[str] = None
    qualification: Optional[str] = None
    consultationFee: Optional[float] = Field(None, ge=0)
    workingDays: Optional[list[str]] = None
    workStart: Optional[time] = None
    workEnd: Optional[time] = None
    breakStart: Optional[time] = None
    breakEnd: Optional[time] = None
    slotMinutes: Optional[int] = Field(None, gt=0, le=480)
    status: Optional[DoctorStatus] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("workingDays")
    @classmethod
    def check_working_days(cls, v):
        return validate_working_days(v)


class DoctorResponse(BaseModel):
    """Schema for doctor response"""

    id: int
    userId: str
    name: str
    email: Optional[str]
    phone: Optional[str]
    specialization: str
    qualification: Optional[str]
    consultationFee: float
    workingDays: list[str]
    workStart: time
    workEnd: time
    breakStart: Optional[time] = None
    breakEnd: Optional[time] = None
    slotMinutes: int
    status: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, doctor) -> "DoctorResponse":
        return cls(
            id=doctor.id,
            userId=doctor.user_id,
            name=doctor.name,
            email=doctor.email,
            phone=doctor.phone,
            specialization=doctor.specialization,
            qualification=doctor.qualification,
            consultationFee=doctor.consultation_fee,
            workingDays=doctor.working_days or [],
            workStart=doctor.work_start,
            workEnd=doctor.work_end,
            breakStart=doctor.break_start,
            breakEnd=doctor.break_end,
            slotMinutes=doctor.slot_minutes,
            status=doctor.status,
            created_at=doctor.created_at,
        )


class SlotResponse(BaseModel):
    """One bookable time slot"""

    startTime: str
    endTime: str
    available: bool
