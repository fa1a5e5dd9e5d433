"""Slot calendar - bookable slots for a doctor on a given day.

Reads doctor availability and existing appointments; never writes. The result
is a pure function of the current store state and the supplied clock.
"""

import logging
from datetime import date, datetime, time
from typing import NamedTuple

from sqlalchemy.orm import Session

from ...errors import ConflictError, InvalidInputError, NotFoundError
from ...models import Appointment, Doctor
from ..appointments.repository import AppointmentRepository
from ..doctors.repository import DoctorRepository
from .time_calculator import add_minutes, generate_slot_grid, overlaps, parse_date, weekday_name

logger = logging.getLogger(__name__)


class Slot(NamedTuple):
    start: time
    end: time
    available: bool


def occupied_intervals(appointments: list[Appointment]) -> list[tuple[time, time]]:
    return [
        (a.slot_start, add_minutes(a.slot_start, a.duration_minutes))
        for a in appointments
        if a.status != "cancelled"
    ]


class SlotCalendar:
    """Computes bookable slots from working hours and existing bookings"""

    def __init__(self, db: Session):
        self.db = db
        self.doctors = DoctorRepository()
        self.appointments = AppointmentRepository()

    def get_active_doctor(self, doctor_id: int) -> Doctor:
        doctor = self.doctors.get_active(self.db, doctor_id)
        if not doctor:
            raise NotFoundError("Doctor not found")
        return doctor

    def get_slots(self, doctor_id: int, day, now: datetime) -> list[Slot]:
        """
        Ordered slots for a doctor's day.

        Raises NotFound for an unknown or inactive doctor and InvalidInput for an
        unparseable or past date. A day the doctor does not work yields no slots.
        """
        doctor = self.get_active_doctor(doctor_id)
        day = parse_date(day)

        if day < now.date():
            raise InvalidInputError("Date is in the past")

        return self.slots_for(doctor, day, now)

    def slots_for(self, doctor: Doctor, day: date, now: datetime) -> list[Slot]:
        if weekday_name(day) not in (doctor.working_days or []):
            return []

        busy = occupied_intervals(
            self.appointments.get_active_for_doctor_day(self.db, doctor.id, day)
        )

        slots = []
        for start, end in generate_slot_grid(
            doctor.work_start, doctor.work_end, doctor.slot_minutes, doctor.break_start, doctor.break_end
        ):
            elapsed = datetime.combine(day, start) <= now
            taken = any(overlaps(start, end, b_start, b_end) for b_start, b_end in busy)
            slots.append(Slot(start=start, end=end, available=not (elapsed or taken)))
        return slots

    def check_slot(self, doctor: Doctor, day: date, start: time, now: datetime) -> Slot:
        """
        Validate a single requested slot against the current calendar.

        Off-grid, out-of-hours, past and non-working-day requests are InvalidInput;
        a slot that is occupied is a Conflict.
        """
        if day < now.date():
            raise InvalidInputError("Cannot book a date in the past")
        if weekday_name(day) not in (doctor.working_days or []):
            raise InvalidInputError(f"Doctor does not work on {weekday_name(day).capitalize()}")

        for slot in self.slots_for(doctor, day, now):
            if slot.start != start:
                continue
            if datetime.combine(day, start) <= now:
                raise InvalidInputError("Requested slot has already started")
            if not slot.available:
                logger.info(f"⚠️ Slot {day} {start} for doctor {doctor.id} is taken")
                raise ConflictError("Slot is no longer available, please pick another time")
            return slot

        raise InvalidInputError("Requested time is not a bookable slot for this doctor")
