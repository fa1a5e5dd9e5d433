"""Tests for appointment and payment state machines."""

import pytest

from clinic.domain.appointments.status import (
    is_terminal,
    validate_payment_transition,
    validate_status_transition,
)


class TestAppointmentTransitions:
    @pytest.mark.parametrize(
        "current,new",
        [
            ("scheduled", "confirmed"),
            ("scheduled", "cancelled"),
            ("scheduled", "no_show"),
            ("confirmed", "completed"),
            ("confirmed", "cancelled"),
        ],
    )
    def test_allowed(self, current, new):
        assert validate_status_transition(current, new) is True

    @pytest.mark.parametrize(
        "current,new",
        [
            ("cancelled", "scheduled"),
            ("cancelled", "confirmed"),
            ("completed", "cancelled"),
            ("no_show", "confirmed"),
            ("confirmed", "scheduled"),
            ("confirmed", "no_show"),
        ],
    )
    def test_rejected(self, current, new):
        assert validate_status_transition(current, new) is False

    def test_same_status_is_noop(self):
        assert validate_status_transition("cancelled", "cancelled") is True

    def test_unknown_status_rejected(self):
        assert validate_status_transition("scheduled", "archived") is False

    def test_completion_requires_confirmation_by_default(self):
        assert validate_status_transition("scheduled", "completed", require_confirmation=True) is False
        assert validate_status_transition("scheduled", "completed", require_confirmation=False) is True

    def test_terminal_statuses(self):
        assert is_terminal("no_show")
        assert not is_terminal("confirmed")


class TestPaymentTransitions:
    def test_pending_to_paid(self):
        assert validate_payment_transition("pending", "paid")

    def test_paid_to_refunded(self):
        assert validate_payment_transition("paid", "refunded")

    def test_refunded_is_terminal(self):
        assert not validate_payment_transition("refunded", "paid")

    def test_paid_back_to_pending_rejected(self):
        assert not validate_payment_transition("paid", "pending")
