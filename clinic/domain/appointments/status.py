"""
Appointment status and payment state machines

Appointment statuses: scheduled → confirmed → completed, with cancelled and
no_show as exits. completed, cancelled and no_show are terminal.
Payment statuses: pending → paid → refunded (pending may also be refunded).
"""

from ...config import REQUIRE_CONFIRMATION_BEFORE_COMPLETION

APPOINTMENT_STATUSES = ("scheduled", "confirmed", "completed", "cancelled", "no_show")
TERMINAL_STATUSES = ("completed", "cancelled", "no_show")
PAYMENT_STATUSES = ("pending", "paid", "refunded")

STATUS_TRANSITIONS = {
    "scheduled": ["confirmed", "cancelled", "no_show"],
    "confirmed": ["completed", "cancelled"],
    "completed": [],  # Terminal state
    "cancelled": [],  # Terminal state
    "no_show": [],  # Terminal state
}

PAYMENT_TRANSITIONS = {
    "pending": ["paid", "refunded"],
    "paid": ["refunded"],
    "refunded": [],  # Terminal state
}


def validate_status_transition(
    current_status: str,
    new_status: str,
    require_confirmation: bool = REQUIRE_CONFIRMATION_BEFORE_COMPLETION,
) -> bool:
    """
    Validate if an appointment status transition is allowed

    Note:
    - Requesting the current status is a no-op and always allowed, so cancelling
      twice leaves the appointment cancelled rather than failing
    - scheduled → completed is only allowed when confirmation is not required

    Returns:
        bool: True if transition is valid, False otherwise
    """
    if new_status not in APPOINTMENT_STATUSES:
        return False

    # Allow same status (no-op)
    if current_status == new_status:
        return True

    if current_status == "scheduled" and new_status == "completed":
        return not require_confirmation

    return new_status in STATUS_TRANSITIONS.get(current_status, [])


def validate_payment_transition(current_status: str, new_status: str) -> bool:
    """Validate a payment status change; same status is a no-op"""
    if new_status not in PAYMENT_STATUSES:
        return False
    if current_status == new_status:
        return True
    return new_status in PAYMENT_TRANSITIONS.get(current_status, [])


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES
