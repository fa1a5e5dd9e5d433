"""Doctor router - FastAPI endpoints for doctor profiles and availability"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import Principal, require_admin
from ...database import get_db
from ...shared.clock import get_now
from ..scheduling.availability_service import SlotCalendar
from ..scheduling.time_calculator import format_time
from .schemas import DoctorCreate, DoctorResponse, DoctorUpdate, SlotResponse
from .service import DoctorService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/doctors", tags=["Doctors"])


def get_doctor_service(db: Session = Depends(get_db)) -> DoctorService:
    """Dependency injection for DoctorService"""
    return DoctorService(db)


def get_slot_calendar(db: Session = Depends(get_db)) -> SlotCalendar:
    return SlotCalendar(db)


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.get("", response_model=list[DoctorResponse])
async def get_doctors(
    specialization: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    service: DoctorService = Depends(get_doctor_service),
):
    """List doctors, optionally filtered by specialization, status or name"""
    return [DoctorResponse.from_model(d) for d in service.get_doctors(specialization, status, search)]


@router.post("", response_model=DoctorResponse, status_code=201)
async def create_doctor(
    data: DoctorCreate,
    principal: Principal = Depends(require_admin),
    service: DoctorService = Depends(get_doctor_service),
):
    """Create a doctor profile with working hours"""
    return DoctorResponse.from_model(service.create_doctor(data))


@router.get("/{doctor_id}", response_model=DoctorResponse)
async def get_doctor(doctor_id: int, service: DoctorService = Depends(get_doctor_service)):
    return DoctorResponse.from_model(service.get_doctor(doctor_id))


@router.patch("/{doctor_id}", response_model=DoctorResponse)
async def update_doctor(
    doctor_id: int,
    data: DoctorUpdate,
    principal: Principal = Depends(require_admin),
    service: DoctorService = Depends(get_doctor_service),
):
    """Update a doctor's profile or working hours"""
    return DoctorResponse.from_model(service.update_doctor(doctor_id, data))


@router.post("/{doctor_id}/deactivate", response_model=DoctorResponse)
async def deactivate_doctor(
    doctor_id: int,
    principal: Principal = Depends(require_admin),
    service: DoctorService = Depends(get_doctor_service),
):
    """Stop a doctor from receiving new bookings; existing appointments are kept"""
    return DoctorResponse.from_model(service.deactivate_doctor(doctor_id))


# ============================================================================
# AVAILABILITY
# ============================================================================


@router.get("/{doctor_id}/available-slots", response_model=list[SlotResponse])
async def get_available_slots(
    doctor_id: int,
    date: str = Query(..., description="YYYY-MM-DD"),
    available_only: bool = Query(False),
    now: datetime = Depends(get_now),
    calendar: SlotCalendar = Depends(get_slot_calendar),
):
    """
    Ordered slot list for one day.
    A day the doctor does not work returns an empty list.
    """
    slots = calendar.get_slots(doctor_id, date, now)
    return [
        SlotResponse(startTime=format_time(s.start), endTime=format_time(s.end), available=s.available)
        for s in slots
        if s.available or not available_only
    ]
