"""Tests for the no-show, reminder and retention jobs."""

from datetime import date, datetime, time

import pytest

from clinic.domain.appointments.repository import AppointmentRepository
from clinic.domain.appointments.service import AppointmentCandidate, AppointmentStore
from clinic.models import Appointment, Notification
from clinic.services.status_automation import mark_no_shows, prune_notifications, send_due_reminders
from conftest import NOW

MONDAY = date(2024, 7, 15)


@pytest.fixture
def book(db, doctor, patient):
    def _book(start):
        return AppointmentStore(db).create(
            AppointmentCandidate(patient_id=patient.id, doctor_id=doctor.id, day=MONDAY, start=start), NOW
        )

    return _book


class TestMarkNoShows:
    @pytest.mark.asyncio
    async def test_marks_and_notifies(self, db, book, hub):
        appointment = book(time(9, 0))

        summary = await mark_no_shows(db, datetime(2024, 7, 15, 10, 0), grace_minutes=15, hub=hub)

        assert summary["marked_no_show"] == 1
        assert summary["appointment_ids"] == [appointment.id]
        assert db.get(Appointment, appointment.id).status == "no_show"
        assert db.query(Notification).filter_by(event="no_show").count() == 2

    @pytest.mark.asyncio
    async def test_nothing_overdue(self, db, book, hub):
        book(time(16, 0))
        summary = await mark_no_shows(db, datetime(2024, 7, 15, 10, 0), grace_minutes=15, hub=hub)
        assert summary["marked_no_show"] == 0

    @pytest.mark.asyncio
    async def test_confirmed_mid_sweep_is_not_notified(self, db, session_factory, book, hub, monkeypatch):
        appointment = book(time(9, 0))
        read_candidates = AppointmentRepository.get_scheduled_until

        def read_then_confirm(repo, session, day):
            rows = read_candidates(repo, session, day)
            other = session_factory()
            try:
                AppointmentStore(other).update_status(appointment.id, "confirmed", datetime(2024, 7, 15, 9, 45))
            finally:
                other.close()
            return rows

        monkeypatch.setattr(AppointmentRepository, "get_scheduled_until", read_then_confirm)

        summary = await mark_no_shows(db, datetime(2024, 7, 15, 10, 0), grace_minutes=15, hub=hub)

        assert summary["marked_no_show"] == 0
        assert db.get(Appointment, appointment.id).status == "confirmed"
        assert db.query(Notification).filter_by(appointment_id=appointment.id, event="no_show").count() == 0


class TestReminders:
    @pytest.mark.asyncio
    async def test_reminds_inside_lead_window_once(self, db, book, hub):
        soon = book(time(9, 0))
        book(time(10, 0))

        first = await send_due_reminders(db, NOW, lead_hours=24, hub=hub)
        second = await send_due_reminders(db, NOW, lead_hours=24, hub=hub)

        assert first["reminded"] == 1
        assert second["reminded"] == 0
        reminders = db.query(Notification).filter_by(event="reminder").all()
        assert {n.appointment_id for n in reminders} == {soon.id}
        assert all(n.type == "reminder" for n in reminders)

    @pytest.mark.asyncio
    async def test_cancelled_appointments_are_skipped(self, db, book, hub):
        appointment = book(time(9, 0))
        AppointmentStore(db).cancel(appointment.id, NOW)

        summary = await send_due_reminders(db, NOW, lead_hours=24, hub=hub)
        assert summary["reminded"] == 0


class TestPruneJob:
    def test_uses_given_retention(self, db):
        db.add(Notification(user_id="u", title="t", message="m", is_read=True, created_at=datetime(2024, 1, 1)))
        db.commit()

        assert prune_notifications(db, NOW, retention_days=30) == {"deleted": 1, "retention_days": 30}
