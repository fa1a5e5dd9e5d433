"""Tests for the appointment store: booking, transitions and concurrency."""

import threading
import time as monotonic_clock
from datetime import date, datetime, time

import pytest
from sqlalchemy.exc import IntegrityError

from clinic.domain.appointments.locks import KeyedLocks, LockTimeout
from clinic.domain.appointments.repository import AppointmentRepository
from clinic.domain.appointments.service import AppointmentCandidate, AppointmentStore
from clinic.errors import (
    BookingTimeoutError,
    ConflictError,
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
)
from clinic.models import Appointment
from conftest import NOW

MONDAY = date(2024, 7, 15)


def candidate(doctor, patient, start=time(10, 0), day=MONDAY):
    return AppointmentCandidate(patient_id=patient.id, doctor_id=doctor.id, day=day, start=start)


class TestCreate:
    def test_creates_scheduled_pending_appointment(self, db, doctor, patient):
        appointment = AppointmentStore(db).create(candidate(doctor, patient), NOW)

        assert appointment.id is not None
        assert appointment.status == "scheduled"
        assert appointment.payment_status == "pending"
        assert appointment.duration_minutes == 30
        assert appointment.amount == 50.0
        assert appointment.public_id

    def test_second_booking_of_same_slot_conflicts(self, db, doctor, patient, make_patient):
        store = AppointmentStore(db)
        store.create(candidate(doctor, patient), NOW)
        other = make_patient(user_id="pat-2", phone="+8801811111111")

        with pytest.raises(ConflictError):
            store.create(candidate(doctor, other), NOW)
        assert db.query(Appointment).count() == 1

    def test_unknown_patient(self, db, doctor):
        store = AppointmentStore(db)
        bad = AppointmentCandidate(patient_id=404, doctor_id=doctor.id, day=MONDAY, start=time(10, 0))
        with pytest.raises(NotFoundError):
            store.create(bad, NOW)

    def test_inactive_patient(self, db, doctor, make_patient):
        patient = make_patient(status="inactive")
        with pytest.raises(NotFoundError):
            AppointmentStore(db).create(candidate(doctor, patient), NOW)
        assert db.query(Appointment).count() == 0

    def test_unknown_doctor(self, db, patient):
        bad = AppointmentCandidate(patient_id=patient.id, doctor_id=404, day=MONDAY, start=time(10, 0))
        with pytest.raises(NotFoundError):
            AppointmentStore(db).create(bad, NOW)
        assert db.query(Appointment).count() == 0

    def test_off_grid_time_rejected(self, db, doctor, patient):
        with pytest.raises(InvalidInputError):
            AppointmentStore(db).create(candidate(doctor, patient, start=time(10, 10)), NOW)

    def test_expired_deadline_persists_nothing(self, db, doctor, patient):
        with pytest.raises(BookingTimeoutError):
            AppointmentStore(db).create(
                candidate(doctor, patient), NOW, deadline=monotonic_clock.monotonic() - 1
            )
        assert db.query(Appointment).count() == 0

    def test_lock_wait_past_deadline_times_out(self, db, doctor, patient):
        locks = KeyedLocks()
        store = AppointmentStore(db, locks=locks)
        held = threading.Event()
        release = threading.Event()

        def hold_lock():
            with locks.hold((doctor.id, MONDAY)):
                held.set()
                release.wait(5)

        holder = threading.Thread(target=hold_lock)
        holder.start()
        held.wait(5)
        try:
            with pytest.raises(BookingTimeoutError):
                store.create(candidate(doctor, patient), NOW, deadline=monotonic_clock.monotonic() + 0.05)
        finally:
            release.set()
            holder.join()

        assert db.query(Appointment).count() == 0
        assert len(locks) == 0


class TestUniqueIndexBackstop:
    def test_index_rejects_second_live_row(self, db, doctor, patient):
        for _ in range(2):
            db.add(
                Appointment(
                    patient_id=patient.id,
                    doctor_id=doctor.id,
                    appointment_date=MONDAY,
                    slot_start=time(10, 0),
                    duration_minutes=30,
                )
            )
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()

    def test_cancelled_rows_do_not_block_the_slot(self, db, doctor, patient):
        db.add(
            Appointment(
                patient_id=patient.id,
                doctor_id=doctor.id,
                appointment_date=MONDAY,
                slot_start=time(10, 0),
                duration_minutes=30,
                status="cancelled",
            )
        )
        db.commit()

        appointment = AppointmentStore(db).create(candidate(doctor, patient), NOW)
        assert appointment.status == "scheduled"


class TestConcurrentBooking:
    def test_exactly_one_of_many_racers_wins(self, session_factory, doctor, patient):
        racers = 8
        barrier = threading.Barrier(racers)
        outcomes = []
        outcomes_lock = threading.Lock()

        def attempt():
            session = session_factory()
            try:
                barrier.wait(5)
                AppointmentStore(session).create(candidate(doctor, patient), NOW)
                result = "booked"
            except ConflictError:
                result = "conflict"
            finally:
                session.close()
            with outcomes_lock:
                outcomes.append(result)

        threads = [threading.Thread(target=attempt) for _ in range(racers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count("booked") == 1
        assert outcomes.count("conflict") == racers - 1

        session = session_factory()
        try:
            assert session.query(Appointment).filter(Appointment.status != "cancelled").count() == 1
        finally:
            session.close()

    def test_different_slots_do_not_conflict(self, session_factory, doctor, patient):
        starts = [time(9, 0), time(9, 30), time(10, 0), time(10, 30)]
        errors = []

        def attempt(start):
            session = session_factory()
            try:
                AppointmentStore(session).create(candidate(doctor, patient, start=start), NOW)
            except Exception as e:
                errors.append(e)
            finally:
                session.close()

        threads = [threading.Thread(target=attempt, args=(s,)) for s in starts]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []


class TestStatusChanges:
    @pytest.fixture
    def appointment(self, db, doctor, patient):
        return AppointmentStore(db).create(candidate(doctor, patient), NOW)

    def test_cancel_sets_cancelled_at(self, db, appointment):
        cancelled = AppointmentStore(db).cancel(appointment.id, NOW)
        assert cancelled.status == "cancelled"
        assert cancelled.cancelled_at == NOW

    def test_cancel_is_idempotent(self, db, appointment):
        store = AppointmentStore(db)
        store.cancel(appointment.id, NOW)
        later = datetime(2024, 7, 14, 10, 0)

        change = store.change_status(appointment.id, "cancelled", later)

        assert change.appointment.status == "cancelled"
        assert change.changed is False
        assert change.appointment.cancelled_at == NOW

    def test_cancelled_slot_is_bookable_again(self, db, doctor, make_patient, appointment):
        store = AppointmentStore(db)
        store.cancel(appointment.id, NOW)
        other = make_patient(user_id="pat-2", phone="+8801811111111")

        rebooked = store.create(candidate(doctor, other), NOW)
        assert rebooked.id != appointment.id

    def test_cancelled_cannot_be_reconfirmed(self, db, appointment):
        store = AppointmentStore(db)
        store.cancel(appointment.id, NOW)
        with pytest.raises(InvalidTransitionError):
            store.update_status(appointment.id, "confirmed", NOW)

    def test_confirm_then_complete(self, db, appointment):
        store = AppointmentStore(db)
        store.update_status(appointment.id, "confirmed", NOW)
        completed = store.update_status(appointment.id, "completed", NOW)
        assert completed.status == "completed"

    def test_complete_without_confirmation_rejected(self, db, appointment):
        with pytest.raises(InvalidTransitionError):
            AppointmentStore(db, require_confirmation=True).update_status(appointment.id, "completed", NOW)

    def test_complete_without_confirmation_when_policy_allows(self, db, appointment):
        store = AppointmentStore(db, require_confirmation=False)
        assert store.update_status(appointment.id, "completed", NOW).status == "completed"

    def test_no_show_before_start_rejected(self, db, appointment):
        with pytest.raises(InvalidTransitionError):
            AppointmentStore(db).update_status(appointment.id, "no_show", NOW)

    def test_no_show_after_start(self, db, appointment):
        after = datetime(2024, 7, 15, 10, 20)
        assert AppointmentStore(db).update_status(appointment.id, "no_show", after).status == "no_show"

    def test_unknown_appointment(self, db):
        with pytest.raises(NotFoundError):
            AppointmentStore(db).cancel(12345, NOW)


class TestPaymentStatus:
    def test_paid_then_refunded(self, db, doctor, patient):
        store = AppointmentStore(db)
        appointment = store.create(candidate(doctor, patient), NOW)

        assert store.update_payment_status(appointment.id, "paid").payment_status == "paid"
        assert store.update_payment_status(appointment.id, "refunded").payment_status == "refunded"

    def test_refunded_is_final(self, db, doctor, patient):
        store = AppointmentStore(db)
        appointment = store.create(candidate(doctor, patient), NOW)
        store.update_payment_status(appointment.id, "refunded")

        with pytest.raises(InvalidTransitionError):
            store.update_payment_status(appointment.id, "paid")


class TestNoShowSweep:
    def test_marks_only_overdue_scheduled(self, db, doctor, patient):
        store = AppointmentStore(db)
        early = store.create(candidate(doctor, patient, start=time(9, 0)), NOW)
        late = store.create(candidate(doctor, patient, start=time(11, 0)), NOW)
        confirmed = store.create(candidate(doctor, patient, start=time(9, 30)), NOW)
        store.update_status(confirmed.id, "confirmed", NOW)

        # 9:00 slot ended 9:30; with 15 minutes grace it is overdue at 9:50
        changed = store.sweep_no_shows(datetime(2024, 7, 15, 9, 50), grace_minutes=15)

        assert [a.id for a in changed] == [early.id]
        db.refresh(late)
        db.refresh(confirmed)
        assert late.status == "scheduled"
        assert confirmed.status == "confirmed"

    def test_grace_period_is_respected(self, db, doctor, patient):
        store = AppointmentStore(db)
        store.create(candidate(doctor, patient, start=time(9, 0)), NOW)

        assert store.sweep_no_shows(datetime(2024, 7, 15, 9, 40), grace_minutes=15) == []

    @pytest.mark.parametrize("new_status", ["confirmed", "cancelled"])
    def test_change_landing_mid_sweep_is_kept(
        self, db, session_factory, doctor, patient, monkeypatch, new_status
    ):
        store = AppointmentStore(db)
        appointment = store.create(candidate(doctor, patient, start=time(9, 0)), NOW)
        read_candidates = AppointmentRepository.get_scheduled_until

        def read_then_change(repo, session, day):
            rows = read_candidates(repo, session, day)
            other = session_factory()
            try:
                AppointmentStore(other).update_status(appointment.id, new_status, datetime(2024, 7, 15, 9, 45))
            finally:
                other.close()
            return rows

        monkeypatch.setattr(AppointmentRepository, "get_scheduled_until", read_then_change)

        changed = store.sweep_no_shows(datetime(2024, 7, 15, 9, 50), grace_minutes=15)

        assert changed == []
        db.refresh(appointment)
        assert appointment.status == new_status


class TestKeyedLocks:
    def test_entries_are_released(self):
        locks = KeyedLocks()
        with locks.hold("a"):
            assert len(locks) == 1
        assert len(locks) == 0

    def test_timeout_raises(self):
        locks = KeyedLocks()
        with locks.hold("a"):
            errors = []

            def contender():
                try:
                    with locks.hold("a", timeout=0.01):
                        pass
                except LockTimeout as e:
                    errors.append(e)

            t = threading.Thread(target=contender)
            t.start()
            t.join()
        assert len(errors) == 1
