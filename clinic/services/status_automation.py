"""
Automated appointment housekeeping
Handles scheduled → no_show after the grace period, upcoming-appointment
reminders and retention of read notifications.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ..config import NO_SHOW_GRACE_MINUTES, NOTIFICATION_RETENTION_DAYS, REMINDER_LEAD_HOURS
from ..domain.appointments.repository import AppointmentRepository
from ..domain.appointments.service import AppointmentStore, slot_window
from ..domain.notifications.repository import NotificationRepository
from ..domain.notifications.service import NotificationDispatcher
from ..errors import DownstreamUnavailableError
from .realtime import RealtimeHub, realtime_hub

logger = logging.getLogger(__name__)


async def mark_no_shows(
    db: Session,
    now: datetime,
    grace_minutes: int = NO_SHOW_GRACE_MINUTES,
    hub: RealtimeHub = realtime_hub,
) -> dict:
    """
    Mark overdue scheduled appointments as no_show and notify both parties.
    Should be run as a scheduled job.

    Returns:
        dict: Summary of status changes made
    """
    changed = AppointmentStore(db).sweep_no_shows(now, grace_minutes)

    dispatcher = NotificationDispatcher(db, hub)
    notified = 0
    for appointment in changed:
        try:
            await dispatcher.notify_appointment(appointment, "no_show")
            notified += 1
        except DownstreamUnavailableError as e:
            logger.warning(f"⚠️ No-show notification for appointment {appointment.id} not stored: {e.detail}")

    return {
        "marked_no_show": len(changed),
        "notified": notified,
        "appointment_ids": [a.id for a in changed],
    }


async def send_due_reminders(
    db: Session,
    now: datetime,
    lead_hours: int = REMINDER_LEAD_HOURS,
    hub: RealtimeHub = realtime_hub,
) -> dict:
    """Send one reminder per live appointment starting within the lead window"""
    appointments = AppointmentRepository()
    notifications = NotificationRepository()
    dispatcher = NotificationDispatcher(db, hub)

    horizon = now + timedelta(hours=lead_hours)
    summary = {"checked": 0, "reminded": 0, "failed": 0}

    for appointment in appointments.get_upcoming_between(db, now.date(), horizon.date()):
        start, _ = slot_window(appointment)
        if not now < start <= horizon:
            continue
        summary["checked"] += 1

        if notifications.has_event_for_appointment(db, appointment.id, "reminder"):
            continue

        try:
            await dispatcher.notify_appointment(appointment, "reminder")
            summary["reminded"] += 1
            logger.info(f"⏰ Reminder sent for appointment {appointment.id} at {start}")
        except DownstreamUnavailableError as e:
            summary["failed"] += 1
            logger.error(f"❌ Reminder for appointment {appointment.id} failed: {e.detail}")

    return summary


def prune_notifications(
    db: Session, now: datetime, retention_days: Optional[int] = None
) -> dict:
    """Drop read notifications past the retention window"""
    days = NOTIFICATION_RETENTION_DAYS if retention_days is None else retention_days
    deleted = NotificationDispatcher(db).prune(now, days)
    return {"deleted": deleted, "retention_days": days}
