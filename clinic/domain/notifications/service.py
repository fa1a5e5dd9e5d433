"""
Notification Dispatcher
Persists in-app notifications and pushes them to connected users.
The stored row is the source of truth; realtime delivery is best-effort and
never retried.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...errors import DownstreamUnavailableError, NotFoundError
from ...models import Appointment, Notification
from ...services.realtime import RealtimeHub, realtime_hub
from ..scheduling.time_calculator import format_time_12h
from .repository import NotificationRepository
from .schemas import NotificationResponse

logger = logging.getLogger(__name__)


@dataclass
class NotificationEvent:
    user_id: str
    title: str
    message: str
    type: str = "system"
    event: Optional[str] = None
    appointment_id: Optional[int] = None


# event -> (title, patient message, doctor message)
APPOINTMENT_MESSAGES = {
    "booked": (
        "Appointment booked",
        "Your appointment with Dr. {doctor} on {date} at {time} is booked.",
        "New appointment with {patient} on {date} at {time}.",
    ),
    "confirmed": (
        "Appointment confirmed",
        "Your appointment with Dr. {doctor} on {date} at {time} is confirmed.",
        "Appointment with {patient} on {date} at {time} is confirmed.",
    ),
    "cancelled": (
        "Appointment cancelled",
        "Your appointment with Dr. {doctor} on {date} at {time} was cancelled.",
        "Appointment with {patient} on {date} at {time} was cancelled.",
    ),
    "completed": (
        "Appointment completed",
        "Your appointment with Dr. {doctor} on {date} is complete. Thank you for visiting.",
        "Appointment with {patient} on {date} at {time} marked completed.",
    ),
    "no_show": (
        "Missed appointment",
        "You missed your appointment with Dr. {doctor} on {date} at {time}.",
        "{patient} did not show up on {date} at {time}.",
    ),
    "reminder": (
        "Upcoming appointment",
        "Reminder: you see Dr. {doctor} on {date} at {time}.",
        "Reminder: {patient} is booked on {date} at {time}.",
    ),
}


class NotificationDispatcher:
    """Service layer for notification delivery and recipient reads"""

    def __init__(self, db: Session, hub: RealtimeHub = realtime_hub):
        self.db = db
        self.hub = hub
        self.repo = NotificationRepository()

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def dispatch(self, event: NotificationEvent) -> Notification:
        """
        Persist one notification, then push it if the recipient is connected.

        Raises:
            DownstreamUnavailableError: The notification could not be stored
        """
        try:
            notification = self.repo.add(
                self.db,
                user_id=event.user_id,
                title=event.title,
                message=event.message,
                type=event.type,
                event=event.event,
                appointment_id=event.appointment_id,
                is_read=False,
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to store {event.event or event.type} notification for {event.user_id}: {e}")
            raise DownstreamUnavailableError("Notification could not be stored") from e

        logger.info(f"🔔 Notification {notification.id} stored for {event.user_id} ({event.event or event.type})")

        if self.hub.is_connected(event.user_id):
            payload = NotificationResponse.from_model(notification).model_dump(mode="json")
            if await self.hub.deliver(event.user_id, payload):
                logger.debug(f"📡 Notification {notification.id} pushed to {event.user_id}")

        return notification

    async def notify_appointment(self, appointment: Appointment, event: str) -> list[Notification]:
        """
        Fan one appointment lifecycle event out to its patient and doctor.

        Each recipient is attempted even when an earlier one could not be stored.

        Raises:
            DownstreamUnavailableError: No recipient's notification could be stored
        """
        title, patient_message, doctor_message = APPOINTMENT_MESSAGES[event]
        context = {
            "doctor": appointment.doctor.name,
            "patient": appointment.patient.name,
            "date": appointment.appointment_date.isoformat(),
            "time": format_time_12h(appointment.slot_start),
        }
        notification_type = "reminder" if event == "reminder" else "appointment"

        recipients = [
            (appointment.patient.user_id, patient_message),
            (appointment.doctor.user_id, doctor_message),
        ]
        sent = []
        for user_id, template in recipients:
            try:
                sent.append(
                    await self.dispatch(
                        NotificationEvent(
                            user_id=user_id,
                            title=title,
                            message=template.format(**context),
                            type=notification_type,
                            event=event,
                            appointment_id=appointment.id,
                        )
                    )
                )
            except DownstreamUnavailableError as e:
                logger.warning(
                    f"⚠️ {event} notification for appointment {appointment.id} to {user_id} not stored: {e.detail}"
                )

        if not sent:
            raise DownstreamUnavailableError("Notification could not be stored")
        return sent

    # ------------------------------------------------------------------
    # Recipient reads
    # ------------------------------------------------------------------

    def list_notifications(
        self, user_id: str, unread_only: bool = False, limit: Optional[int] = 50, offset: int = 0
    ) -> list[Notification]:
        return self.repo.list_for_user(self.db, user_id, unread_only, limit, offset)

    def unread_count(self, user_id: str) -> int:
        return self.repo.count_unread(self.db, user_id)

    def mark_read(self, notification_id: int, user_id: str) -> Notification:
        notification = self.repo.get_for_user(self.db, notification_id, user_id)
        if not notification:
            raise NotFoundError("Notification not found")
        if not notification.is_read:
            notification.is_read = True
            self.db.commit()
            self.db.refresh(notification)
        return notification

    def mark_all_read(self, user_id: str) -> int:
        updated = self.repo.mark_all_read(self.db, user_id)
        logger.info(f"📭 Marked {updated} notifications read for {user_id}")
        return updated

    def prune(self, now: datetime, retention_days: int) -> int:
        """Delete read notifications older than the retention window; 0 days keeps everything"""
        if retention_days <= 0:
            return 0
        deleted = self.repo.delete_read_before(self.db, now - timedelta(days=retention_days))
        if deleted:
            logger.info(f"🗑️ Pruned {deleted} read notifications older than {retention_days} days")
        return deleted
