"""Appointment repository - Database operations for appointments"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Appointment
from ..repository import Repository


class AppointmentRepository(Repository[Appointment]):
    """Repository for appointment database operations"""

    model = Appointment

    def get_for_update(self, db: Session, appointment_id: int) -> Optional[Appointment]:
        """Get an appointment row locked for a status change (no-op on SQLite)"""
        return (
            db.query(Appointment)
            .filter(Appointment.id == appointment_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def get_active_for_doctor_day(self, db: Session, doctor_id: int, day: date) -> list[Appointment]:
        """Appointments that still occupy the doctor's calendar on that day"""
        return (
            db.query(Appointment)
            .filter(
                Appointment.doctor_id == doctor_id,
                Appointment.appointment_date == day,
                Appointment.status != "cancelled",
            )
            .order_by(Appointment.slot_start.asc())
            .all()
        )

    def filter_appointments(
        self,
        db: Session,
        doctor_id: Optional[int] = None,
        patient_id: Optional[int] = None,
        status: Optional[str] = None,
        day: Optional[date] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Appointment]:
        """List appointments with optional filters, ordered chronologically"""
        query = self.query(
            db,
            doctor_id=doctor_id,
            patient_id=patient_id,
            status=status,
            appointment_date=day,
        )
        if date_from:
            query = query.filter(Appointment.appointment_date >= date_from)
        if date_to:
            query = query.filter(Appointment.appointment_date <= date_to)

        query = query.order_by(
            Appointment.appointment_date.asc(), Appointment.slot_start.asc(), Appointment.id.asc()
        )
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def get_scheduled_until(self, db: Session, day: date) -> list[Appointment]:
        """Scheduled (unconfirmed) appointments on or before a day, candidates for no-show.

        Rows another transaction is changing are skipped (no-op on SQLite).
        """
        return (
            db.query(Appointment)
            .filter(Appointment.status == "scheduled", Appointment.appointment_date <= day)
            .with_for_update(skip_locked=True)
            .populate_existing()
            .all()
        )

    def set_status_if(self, db: Session, appointment_id: int, expected: str, new_status: str) -> bool:
        """Change status only if the row still has the expected one; True when a row was updated"""
        updated = (
            db.query(Appointment)
            .filter(Appointment.id == appointment_id, Appointment.status == expected)
            .update({Appointment.status: new_status}, synchronize_session=False)
        )
        return updated == 1

    def get_upcoming_between(self, db: Session, start_day: date, end_day: date) -> list[Appointment]:
        """Live (scheduled or confirmed) appointments in a date window"""
        return (
            db.query(Appointment)
            .filter(
                Appointment.status.in_(["scheduled", "confirmed"]),
                Appointment.appointment_date >= start_day,
                Appointment.appointment_date <= end_day,
            )
            .order_by(Appointment.appointment_date.asc(), Appointment.slot_start.asc())
            .all()
        )
