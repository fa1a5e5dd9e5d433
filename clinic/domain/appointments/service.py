"""Appointment store - the only writer of appointment records.

Enforces the no-double-booking rule: check-then-insert runs under a per
doctor-day lock, and the partial unique index on live slots turns a race lost
to another process into a Conflict instead of a second booking.
"""

import logging
import time as monotonic_clock
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import REQUIRE_CONFIRMATION_BEFORE_COMPLETION
from ...errors import BookingTimeoutError, ConflictError, InvalidTransitionError, NotFoundError
from ...models import Appointment
from ..patients.repository import PatientRepository
from ..scheduling.availability_service import SlotCalendar
from .locks import KeyedLocks, LockTimeout, slot_locks
from .repository import AppointmentRepository
from .status import validate_payment_transition, validate_status_transition

logger = logging.getLogger(__name__)


@dataclass
class AppointmentCandidate:
    """A parsed booking request, ready to be checked and inserted"""

    patient_id: int
    doctor_id: int
    day: date
    start: time
    appointment_type: str = "consultation"
    reason: Optional[str] = None
    notes: Optional[str] = None
    booked_by: Optional[str] = None


@dataclass
class StatusChange:
    appointment: Appointment
    previous_status: str

    @property
    def changed(self) -> bool:
        return self.appointment.status != self.previous_status


def slot_window(appointment: Appointment) -> tuple[datetime, datetime]:
    start = datetime.combine(appointment.appointment_date, appointment.slot_start)
    return start, start + timedelta(minutes=appointment.duration_minutes)


class AppointmentStore:
    """Authoritative holder of appointment records"""

    def __init__(
        self,
        db: Session,
        locks: KeyedLocks = slot_locks,
        require_confirmation: bool = REQUIRE_CONFIRMATION_BEFORE_COMPLETION,
    ):
        self.db = db
        self.repo = AppointmentRepository()
        self.patients = PatientRepository()
        self.calendar = SlotCalendar(db)
        self.locks = locks
        self.require_confirmation = require_confirmation

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, appointment_id: int) -> Appointment:
        appointment = self.repo.get(self.db, appointment_id)
        if not appointment:
            raise NotFoundError("Appointment not found")
        return appointment

    def list_appointments(
        self,
        doctor_id: Optional[int] = None,
        patient_id: Optional[int] = None,
        status: Optional[str] = None,
        day: Optional[date] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Appointment]:
        return self.repo.filter_appointments(
            self.db, doctor_id, patient_id, status, day, date_from, date_to, limit, offset
        )

    def list_for_day(self, day: date) -> list[Appointment]:
        return self.repo.filter_appointments(self.db, day=day)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(
        self,
        candidate: AppointmentCandidate,
        now: datetime,
        deadline: Optional[float] = None,
    ) -> Appointment:
        """
        Insert a scheduled appointment if its slot is free at call time.

        Args:
            candidate: Parsed booking request
            now: Request time in clinic wall-clock
            deadline: time.monotonic() value after which nothing may be committed

        Raises:
            NotFoundError: Unknown or inactive patient or doctor
            InvalidInputError: Past, off-grid or out-of-hours slot
            ConflictError: Slot taken, including a race lost at insert time
            BookingTimeoutError: Deadline passed; the transaction is rolled back
        """
        patient = self.patients.get(self.db, candidate.patient_id)
        if not patient or not patient.is_active:
            raise NotFoundError("Patient not found")
        doctor = self.calendar.get_active_doctor(candidate.doctor_id)

        key = (doctor.id, candidate.day)
        timeout = None if deadline is None else deadline - monotonic_clock.monotonic()

        try:
            with self.locks.hold(key, timeout=timeout):
                slot = self.calendar.check_slot(doctor, candidate.day, candidate.start, now)

                appointment = Appointment(
                    patient_id=patient.id,
                    doctor_id=doctor.id,
                    appointment_date=candidate.day,
                    slot_start=slot.start,
                    duration_minutes=doctor.slot_minutes,
                    appointment_type=candidate.appointment_type,
                    reason=candidate.reason,
                    notes=candidate.notes,
                    status="scheduled",
                    payment_status="pending",
                    amount=doctor.consultation_fee or 0.0,
                    booked_by=candidate.booked_by,
                )
                self.db.add(appointment)
                self.db.flush()

                if deadline is not None and monotonic_clock.monotonic() > deadline:
                    self.db.rollback()
                    logger.warning(
                        f"⏱️ Booking for doctor {doctor.id} on {candidate.day} {candidate.start} "
                        "exceeded its deadline, rolled back"
                    )
                    raise BookingTimeoutError()

                self.db.commit()
        except LockTimeout:
            raise BookingTimeoutError() from None
        except IntegrityError:
            self.db.rollback()
            logger.warning(
                f"⚠️ Lost booking race for doctor {doctor.id} on {candidate.day} {candidate.start}"
            )
            raise ConflictError("Slot is no longer available, please pick another time") from None

        self.db.refresh(appointment)
        logger.info(
            f"✅ Appointment {appointment.id} booked: doctor {doctor.id}, patient {patient.id}, "
            f"{appointment.appointment_date} {appointment.slot_start:%H:%M}"
        )
        return appointment

    def change_status(self, appointment_id: int, new_status: str, now: datetime) -> StatusChange:
        """Apply a status transition and report what it was before"""
        appointment = self.repo.get_for_update(self.db, appointment_id)
        if not appointment:
            self.db.rollback()
            raise NotFoundError("Appointment not found")

        previous = appointment.status
        if not validate_status_transition(previous, new_status, self.require_confirmation):
            self.db.rollback()
            raise InvalidTransitionError(f"Cannot change appointment from {previous} to {new_status}")

        if previous == new_status:
            self.db.commit()
            logger.debug(f"ℹ️ Appointment {appointment_id} already {new_status}, nothing to do")
            return StatusChange(appointment=appointment, previous_status=previous)

        if new_status == "no_show" and slot_window(appointment)[0] > now:
            self.db.rollback()
            raise InvalidTransitionError("Cannot mark a no-show before the appointment starts")

        appointment.status = new_status
        if new_status == "cancelled":
            appointment.cancelled_at = now

        self.db.commit()
        self.db.refresh(appointment)
        logger.info(f"✅ Appointment {appointment.id} transitioned: {previous} → {new_status}")
        return StatusChange(appointment=appointment, previous_status=previous)

    def update_status(self, appointment_id: int, new_status: str, now: datetime) -> Appointment:
        return self.change_status(appointment_id, new_status, now).appointment

    def cancel(self, appointment_id: int, now: datetime) -> Appointment:
        """Cancel an appointment; its slot is bookable again immediately"""
        return self.update_status(appointment_id, "cancelled", now)

    def update_payment_status(self, appointment_id: int, new_status: str) -> Appointment:
        appointment = self.repo.get_for_update(self.db, appointment_id)
        if not appointment:
            self.db.rollback()
            raise NotFoundError("Appointment not found")

        previous = appointment.payment_status
        if not validate_payment_transition(previous, new_status):
            self.db.rollback()
            raise InvalidTransitionError(f"Cannot change payment from {previous} to {new_status}")

        appointment.payment_status = new_status
        self.db.commit()
        self.db.refresh(appointment)
        if previous != new_status:
            logger.info(f"💳 Appointment {appointment.id} payment: {previous} → {new_status}")
        return appointment

    def sweep_no_shows(self, now: datetime, grace_minutes: int) -> list[Appointment]:
        """
        Mark scheduled appointments whose slot ended more than grace_minutes ago as no_show.
        Confirmed appointments are left for staff to complete or cancel.

        Each row is updated only while it is still scheduled, so a confirm or
        cancel that lands after the candidates were read is never overwritten.
        """
        grace = timedelta(minutes=grace_minutes)
        changed = []

        try:
            for appointment in self.repo.get_scheduled_until(self.db, now.date()):
                _, end = slot_window(appointment)
                if end + grace > now:
                    continue
                previous = appointment.status
                if not validate_status_transition(previous, "no_show", self.require_confirmation):
                    continue
                if not self.repo.set_status_if(self.db, appointment.id, previous, "no_show"):
                    logger.info(f"ℹ️ Appointment {appointment.id} changed during the sweep, skipped")
                    continue
                changed.append(appointment)
                logger.info(f"✅ Appointment {appointment.id} transitioned: {previous} → no_show")

            self.db.commit()
            if changed:
                logger.info(f"📊 No-show sweep marked {len(changed)} appointments")
            else:
                logger.debug("ℹ️ No appointments to mark as no-show")
        except Exception as e:
            logger.error(f"❌ Error during no-show sweep: {str(e)}")
            self.db.rollback()
            raise

        for appointment in changed:
            self.db.refresh(appointment)
        return changed
