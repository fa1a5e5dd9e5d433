"""Tests for the slot calendar."""

from datetime import date, datetime, time

import pytest

from clinic.domain.scheduling.availability_service import SlotCalendar
from clinic.errors import ConflictError, InvalidInputError, NotFoundError
from clinic.models import Appointment
from conftest import NOW

MONDAY = date(2024, 7, 15)
SATURDAY = date(2024, 7, 20)


def book(db, doctor, patient, start, status="scheduled", day=MONDAY):
    appointment = Appointment(
        patient_id=patient.id,
        doctor_id=doctor.id,
        appointment_date=day,
        slot_start=start,
        duration_minutes=doctor.slot_minutes,
        status=status,
    )
    db.add(appointment)
    db.commit()
    return appointment


class TestGetSlots:
    def test_slots_are_ordered_and_skip_break(self, db, doctor):
        slots = SlotCalendar(db).get_slots(doctor.id, "2024-07-15", NOW)

        starts = [s.start for s in slots]
        assert starts == sorted(starts)
        assert starts[0] == time(9, 0)
        assert slots[-1].end == time(17, 0)
        assert time(13, 0) not in starts
        # 16 half-hour slots between 9 and 5, minus the two in the lunch break
        assert len(slots) == 14
        assert all(s.available for s in slots)

    def test_non_working_day_is_empty(self, db, doctor):
        assert SlotCalendar(db).get_slots(doctor.id, SATURDAY, NOW) == []

    def test_booked_slot_is_unavailable(self, db, doctor, patient):
        book(db, doctor, patient, time(10, 0))

        slots = {s.start: s for s in SlotCalendar(db).get_slots(doctor.id, MONDAY, NOW)}
        assert slots[time(10, 0)].available is False
        assert slots[time(10, 30)].available is True

    def test_cancelled_booking_frees_slot(self, db, doctor, patient):
        book(db, doctor, patient, time(10, 0), status="cancelled")

        slots = {s.start: s for s in SlotCalendar(db).get_slots(doctor.id, MONDAY, NOW)}
        assert slots[time(10, 0)].available is True

    def test_elapsed_slots_are_unavailable_today(self, db, doctor):
        now = datetime(2024, 7, 15, 11, 10)
        slots = {s.start: s for s in SlotCalendar(db).get_slots(doctor.id, MONDAY, now)}

        assert slots[time(9, 0)].available is False
        assert slots[time(11, 0)].available is False
        assert slots[time(11, 30)].available is True

    def test_past_date_rejected(self, db, doctor):
        with pytest.raises(InvalidInputError):
            SlotCalendar(db).get_slots(doctor.id, "2024-07-01", NOW)

    def test_malformed_date_rejected(self, db, doctor):
        with pytest.raises(InvalidInputError):
            SlotCalendar(db).get_slots(doctor.id, "15-07-2024", NOW)

    def test_unknown_doctor(self, db):
        with pytest.raises(NotFoundError):
            SlotCalendar(db).get_slots(999, MONDAY, NOW)

    def test_inactive_doctor(self, db, make_doctor):
        doctor = make_doctor(status="inactive")
        with pytest.raises(NotFoundError):
            SlotCalendar(db).get_slots(doctor.id, MONDAY, NOW)

    def test_reads_are_repeatable(self, db, doctor, patient):
        book(db, doctor, patient, time(9, 30))
        calendar = SlotCalendar(db)
        assert calendar.get_slots(doctor.id, MONDAY, NOW) == calendar.get_slots(doctor.id, MONDAY, NOW)


class TestCheckSlot:
    def test_free_slot(self, db, doctor):
        slot = SlotCalendar(db).check_slot(doctor, MONDAY, time(10, 0), NOW)
        assert slot.end == time(10, 30)

    def test_taken_slot_conflicts(self, db, doctor, patient):
        book(db, doctor, patient, time(10, 0))
        with pytest.raises(ConflictError):
            SlotCalendar(db).check_slot(doctor, MONDAY, time(10, 0), NOW)

    @pytest.mark.parametrize("start", [time(10, 15), time(13, 0), time(8, 0), time(17, 0)])
    def test_off_grid_rejected(self, db, doctor, start):
        with pytest.raises(InvalidInputError):
            SlotCalendar(db).check_slot(doctor, MONDAY, start, NOW)

    def test_non_working_day_rejected(self, db, doctor):
        with pytest.raises(InvalidInputError):
            SlotCalendar(db).check_slot(doctor, SATURDAY, time(10, 0), NOW)

    def test_started_slot_rejected(self, db, doctor):
        with pytest.raises(InvalidInputError):
            SlotCalendar(db).check_slot(doctor, MONDAY, time(10, 0), datetime(2024, 7, 15, 10, 5))
