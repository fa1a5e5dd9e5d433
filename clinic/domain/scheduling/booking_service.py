"""
Booking workflow
Orchestrates a booking request end to end: validate the parties, check the
slot, create the appointment under a deadline and notify both sides.
Notification failures are logged and never undo a committed appointment.
"""

import logging
import time as monotonic_clock
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...auth import Principal
from ...config import BOOKING_TIMEOUT_SECONDS
from ...errors import DownstreamUnavailableError, NotFoundError, PermissionDeniedError
from ...models import Appointment, Patient
from ...services.realtime import RealtimeHub, realtime_hub
from ..appointments.service import AppointmentCandidate, AppointmentStore
from ..notifications.service import NotificationDispatcher
from ..patients.repository import PatientRepository
from .availability_service import SlotCalendar
from .time_calculator import parse_date, parse_time

logger = logging.getLogger(__name__)

# Status changes that produce a lifecycle notification, keyed by the new status
NOTIFIED_STATUSES = ("confirmed", "cancelled", "completed", "no_show")


class BookingWorkflow:
    """Service layer for booking and lifecycle transitions"""

    def __init__(
        self,
        db: Session,
        store: Optional[AppointmentStore] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        hub: RealtimeHub = realtime_hub,
        timeout_seconds: float = BOOKING_TIMEOUT_SECONDS,
    ):
        self.db = db
        self.store = store or AppointmentStore(db)
        self.dispatcher = dispatcher or NotificationDispatcher(db, hub)
        self.calendar = SlotCalendar(db)
        self.patients = PatientRepository()
        self.timeout_seconds = timeout_seconds

    def _get_active_patient(self, patient_id: int) -> Patient:
        patient = self.patients.get(self.db, patient_id)
        if not patient or not patient.is_active:
            raise NotFoundError("Patient not found")
        return patient

    def _authorize(self, principal: Principal, patient: Patient) -> None:
        """Patients act only on their own record; staff act on anyone's"""
        if principal.is_staff:
            return
        if patient.user_id != principal.user_id:
            logger.warning(f"⚠️ {principal.user_id} tried to act for patient {patient.id}")
            raise PermissionDeniedError("Patients may only manage their own appointments")

    async def _notify(self, appointment: Appointment, event: str) -> None:
        try:
            await self.dispatcher.notify_appointment(appointment, event)
        except DownstreamUnavailableError as e:
            logger.warning(f"⚠️ Appointment {appointment.id} {event} notification not stored: {e.detail}")
        except Exception as e:
            logger.error(f"❌ Appointment {appointment.id} {event} notification failed: {e}")

    async def book_appointment(self, request, principal: Principal, now: datetime) -> Appointment:
        """
        Book a slot for a patient.

        Args:
            request: AppointmentCreate payload
            principal: Authenticated caller
            now: Request time in clinic wall-clock

        Returns:
            The committed appointment, status=scheduled

        Raises:
            NotFoundError, InvalidInputError, ConflictError, PermissionDeniedError,
            BookingTimeoutError
        """
        deadline = monotonic_clock.monotonic() + self.timeout_seconds

        day = parse_date(request.date)
        start = parse_time(request.time)

        patient = self._get_active_patient(request.patientId)
        self._authorize(principal, patient)
        doctor = self.calendar.get_active_doctor(request.doctorId)

        # Fail fast before taking the slot lock; the store re-checks under it
        self.calendar.check_slot(doctor, day, start, now)

        appointment = self.store.create(
            AppointmentCandidate(
                patient_id=patient.id,
                doctor_id=doctor.id,
                day=day,
                start=start,
                appointment_type=request.type,
                reason=request.reason,
                notes=request.notes,
                booked_by=principal.user_id,
            ),
            now=now,
            deadline=deadline,
        )

        await self._notify(appointment, "booked")
        return appointment

    async def transition(
        self, appointment_id: int, new_status: str, principal: Principal, now: datetime
    ) -> Appointment:
        """Apply a status change and notify both parties when something actually changed"""
        if not principal.is_staff:
            if new_status != "cancelled":
                raise PermissionDeniedError("Only staff can set this status")
            self._authorize(principal, self.store.get(appointment_id).patient)

        change = self.store.change_status(appointment_id, new_status, now)
        if change.changed and new_status in NOTIFIED_STATUSES:
            await self._notify(change.appointment, new_status)
        return change.appointment

    async def cancel(self, appointment_id: int, principal: Principal, now: datetime) -> Appointment:
        return await self.transition(appointment_id, "cancelled", principal, now)
