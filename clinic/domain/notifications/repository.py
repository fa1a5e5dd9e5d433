"""Notification repository - Database operations for notifications"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Notification
from ..repository import Repository


class NotificationRepository(Repository[Notification]):
    """Repository for notification database operations"""

    model = Notification

    def list_for_user(
        self,
        db: Session,
        user_id: str,
        unread_only: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Notification]:
        """Newest first"""
        query = db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        query = query.order_by(Notification.created_at.desc(), Notification.id.desc())
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def get_for_user(self, db: Session, notification_id: int, user_id: str) -> Optional[Notification]:
        return (
            db.query(Notification)
            .filter(Notification.id == notification_id, Notification.user_id == user_id)
            .first()
        )

    def count_unread(self, db: Session, user_id: str) -> int:
        return (
            db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .count()
        )

    def mark_all_read(self, db: Session, user_id: str) -> int:
        """Bulk update; returns number of rows changed"""
        updated = (
            db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .update({Notification.is_read: True}, synchronize_session=False)
        )
        db.commit()
        return updated

    def has_event_for_appointment(self, db: Session, appointment_id: int, event: str) -> bool:
        return (
            db.query(Notification.id)
            .filter(Notification.appointment_id == appointment_id, Notification.event == event)
            .first()
            is not None
        )

    def delete_read_before(self, db: Session, cutoff: datetime) -> int:
        deleted = (
            db.query(Notification)
            .filter(Notification.is_read.is_(True), Notification.created_at < cutoff)
            .delete(synchronize_session=False)
        )
        db.commit()
        return deleted
