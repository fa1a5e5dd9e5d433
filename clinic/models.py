import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .shared.clock import clinic_now


def generate_public_id():
    """Generate a unique public ID for secure public access"""
    return str(uuid.uuid4())


class Doctor(Base):
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), unique=True, index=True, nullable=False)  # Identity provider subject
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    specialization = Column(String(255), nullable=False)
    qualification = Column(String(255), nullable=True)
    consultation_fee = Column(Float, default=0.0, nullable=False)
    working_days = Column(JSON, default=list, nullable=False)  # ["monday", "tuesday", ...]
    work_start = Column(Time, nullable=False)
    work_end = Column(Time, nullable=False)
    break_start = Column(Time, nullable=True)
    break_end = Column(Time, nullable=True)
    slot_minutes = Column(Integer, default=30, nullable=False)
    status = Column(String(50), default="active", nullable=False)  # active, inactive, on_leave
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    appointments = relationship("Appointment", back_populates="doctor")

    @property
    def is_active(self) -> bool:
        return self.status == "active"


class Patient(Base):
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=False)
    date_of_birth = Column(Date, nullable=True)
    gender = Column(String(20), nullable=True)  # male, female, other
    address = Column(String(500), nullable=True)
    medical_history = Column(Text, nullable=True)  # Free text or pointer to records system
    status = Column(String(50), default="active", nullable=False)  # active, inactive
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    appointments = relationship("Appointment", back_populates="patient")

    @property
    def is_active(self) -> bool:
        return self.status == "active"


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, index=True, default=generate_public_id)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False, index=True)
    appointment_date = Column(Date, nullable=False, index=True)
    slot_start = Column(Time, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    appointment_type = Column(
        String(50), default="consultation", nullable=False
    )  # consultation, follow_up, emergency, routine_checkup
    reason = Column(String(1000), nullable=True)
    notes = Column(String(1000), nullable=True)
    status = Column(
        String(50), default="scheduled", nullable=False, index=True
    )  # scheduled, confirmed, completed, cancelled, no_show
    payment_status = Column(String(50), default="pending", nullable=False)  # pending, paid, refunded
    amount = Column(Float, default=0.0, nullable=False)
    booked_by = Column(String(255), nullable=True)  # Principal that requested the booking
    cancelled_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    patient = relationship("Patient", back_populates="appointments")
    doctor = relationship("Doctor", back_populates="appointments")

    # At most one live appointment per doctor slot; cancelled rows free the slot
    __table_args__ = (
        Index(
            "uq_appointments_active_slot",
            "doctor_id",
            "appointment_date",
            "slot_start",
            unique=True,
            postgresql_where=text("status <> 'cancelled'"),
            sqlite_where=text("status <> 'cancelled'"),
        ),
    )


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    message = Column(String(2000), nullable=False)
    type = Column(
        String(50), default="system", nullable=False
    )  # appointment, test_result, payment, system, reminder
    event = Column(String(50), nullable=True)  # booked, confirmed, cancelled, reminder, ...
    is_read = Column(Boolean, default=False, nullable=False)
    # Weak reference: notifications outlive the rows they mention
    appointment_id = Column(Integer, nullable=True, index=True)
    # Clinic wall-clock, the same clock retention cutoffs are computed from
    created_at = Column(DateTime, default=clinic_now, server_default=func.now(), index=True)
