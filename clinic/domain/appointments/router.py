"""Appointment router - FastAPI endpoints for booking and appointment lifecycle"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import Principal, get_current_principal, require_staff
from ...config import NO_SHOW_GRACE_MINUTES
from ...database import get_db
from ...errors import PermissionDeniedError
from ...services.status_automation import mark_no_shows
from ...shared.clock import get_now
from ..patients.repository import PatientRepository
from ..scheduling.booking_service import BookingWorkflow
from ..scheduling.time_calculator import parse_date
from .schemas import (
    AppointmentCreate,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentStatusUpdate,
    NoShowSweepResult,
    PaymentStatusUpdate,
)
from .service import AppointmentStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


def get_appointment_store(db: Session = Depends(get_db)) -> AppointmentStore:
    """Dependency injection for AppointmentStore"""
    return AppointmentStore(db)


def get_booking_workflow(db: Session = Depends(get_db)) -> BookingWorkflow:
    """Dependency injection for BookingWorkflow"""
    return BookingWorkflow(db)


def scoped_patient_id(principal: Principal, db: Session, requested: Optional[int]) -> Optional[int]:
    """Staff see any patient; a patient only ever sees their own appointments (-1 when unregistered)"""
    if principal.is_staff:
        return requested
    patient = PatientRepository().get_by_user_id(db, principal.user_id)
    if not patient:
        return -1
    if requested is not None and requested != patient.id:
        raise PermissionDeniedError("Patients may only view their own appointments")
    return patient.id


# ============================================================================
# QUERIES
# ============================================================================


@router.get("", response_model=list[AppointmentResponse])
async def get_appointments(
    patientId: Optional[int] = Query(None),
    doctorId: Optional[int] = Query(None),
    status: Optional[AppointmentStatus] = Query(None),
    date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    dateFrom: Optional[str] = Query(None),
    dateTo: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=500),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    store: AppointmentStore = Depends(get_appointment_store),
):
    """List appointments, oldest first, with optional filters"""
    appointments = store.list_appointments(
        doctor_id=doctorId,
        patient_id=scoped_patient_id(principal, db, patientId),
        status=status,
        day=parse_date(date) if date else None,
        date_from=parse_date(dateFrom) if dateFrom else None,
        date_to=parse_date(dateTo) if dateTo else None,
        limit=limit,
        offset=offset,
    )
    return [AppointmentResponse.from_model(a) for a in appointments]


@router.get("/today", response_model=list[AppointmentResponse])
async def get_today_appointments(
    now: datetime = Depends(get_now),
    principal: Principal = Depends(require_staff),
    store: AppointmentStore = Depends(get_appointment_store),
):
    """Front-desk view of every appointment on the current clinic day"""
    return [AppointmentResponse.from_model(a) for a in store.list_for_day(now.date())]


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: int,
    principal: Principal = Depends(get_current_principal),
    store: AppointmentStore = Depends(get_appointment_store),
):
    appointment = store.get(appointment_id)
    if not principal.is_staff and appointment.patient.user_id != principal.user_id:
        raise PermissionDeniedError("Patients may only view their own appointments")
    return AppointmentResponse.from_model(appointment)


# ============================================================================
# BOOKING AND LIFECYCLE
# ============================================================================


@router.post("", response_model=AppointmentResponse, status_code=201)
async def book_appointment(
    data: AppointmentCreate,
    now: datetime = Depends(get_now),
    principal: Principal = Depends(get_current_principal),
    workflow: BookingWorkflow = Depends(get_booking_workflow),
):
    """
    Book a slot. 409 means the slot was taken in the meantime: re-fetch
    available slots and pick another.
    """
    logger.info(f"📥 Booking request from {principal.user_id}: doctor {data.doctorId} {data.date} {data.time}")
    appointment = await workflow.book_appointment(data, principal, now)
    return AppointmentResponse.from_model(appointment)


@router.patch("/{appointment_id}/status", response_model=AppointmentResponse)
async def update_appointment_status(
    appointment_id: int,
    data: AppointmentStatusUpdate,
    now: datetime = Depends(get_now),
    principal: Principal = Depends(get_current_principal),
    workflow: BookingWorkflow = Depends(get_booking_workflow),
):
    """Staff may set any legal status; patients may only cancel their own appointments"""
    appointment = await workflow.transition(appointment_id, data.status, principal, now)
    return AppointmentResponse.from_model(appointment)


@router.patch("/{appointment_id}/payment-status", response_model=AppointmentResponse)
async def update_payment_status(
    appointment_id: int,
    data: PaymentStatusUpdate,
    principal: Principal = Depends(require_staff),
    store: AppointmentStore = Depends(get_appointment_store),
):
    return AppointmentResponse.from_model(store.update_payment_status(appointment_id, data.paymentStatus))


@router.post("/no-show-sweep", response_model=NoShowSweepResult)
async def run_no_show_sweep(
    now: datetime = Depends(get_now),
    principal: Principal = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """
    Manually trigger the no-show sweep
    (In production this runs from the worker every 15 minutes)
    """
    result = await mark_no_shows(db, now, NO_SHOW_GRACE_MINUTES)
    return NoShowSweepResult(
        marked_no_show=result["marked_no_show"], appointment_ids=result["appointment_ids"]
    )
