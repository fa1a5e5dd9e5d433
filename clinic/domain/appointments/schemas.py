"""Appointment domain schemas - Pydantic models for validation"""

from datetime import date as date_type, datetime, time
from typing import Literal, Optional

from pydantic import BaseModel, Field

from ..scheduling.time_calculator import add_minutes, format_time

AppointmentType = Literal["consultation", "follow_up", "emergency", "routine_checkup"]
AppointmentStatus = Literal["scheduled", "confirmed", "completed", "cancelled", "no_show"]
PaymentStatus = Literal["pending", "paid", "refunded"]


class AppointmentCreate(BaseModel):
    """Schema for a booking request"""

    patientId: int
    doctorId: int
    date: str  # YYYY-MM-DD
    time: str  # HH:MM
    type: AppointmentType = "consultation"
    reason: Optional[str] = Field(None, max_length=1000)
    notes: Optional[str] = Field(None, max_length=1000)


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus


class PaymentStatusUpdate(BaseModel):
    paymentStatus: PaymentStatus


class AppointmentResponse(BaseModel):
    """Schema for appointment response"""

    id: int
    publicId: str
    patientId: int
    doctorId: int
    patientName: Optional[str] = None
    doctorName: Optional[str] = None
    date: date_type
    time: str
    endTime: str
    durationMinutes: int
    type: str
    reason: Optional[str] = None
    notes: Optional[str] = None
    status: str
    paymentStatus: str
    amount: float
    cancelledAt: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, appointment) -> "AppointmentResponse":
        start: time = appointment.slot_start
        return cls(
            id=appointment.id,
            publicId=appointment.public_id,
            patientId=appointment.patient_id,
            doctorId=appointment.doctor_id,
            patientName=appointment.patient.name if appointment.patient else None,
            doctorName=appointment.doctor.name if appointment.doctor else None,
            date=appointment.appointment_date,
            time=format_time(start),
            endTime=format_time(add_minutes(start, appointment.duration_minutes)),
            durationMinutes=appointment.duration_minutes,
            type=appointment.appointment_type,
            reason=appointment.reason,
            notes=appointment.notes,
            status=appointment.status,
            paymentStatus=appointment.payment_status,
            amount=appointment.amount,
            cancelledAt=appointment.cancelled_at,
            created_at=appointment.created_at,
            updated_at=appointment.updated_at,
        )


class NoShowSweepResult(BaseModel):
    marked_no_show: int
    appointment_ids: list[int]
