"""Notification domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, field_validator

NotificationType = Literal["appointment", "test_result", "payment", "system", "reminder"]


class NotificationCreate(BaseModel):
    """Staff-issued notification, e.g. a test result becoming available"""

    userId: str
    title: str
    message: str
    type: NotificationType = "system"
    event: Optional[str] = None
    appointmentId: Optional[int] = None

    @field_validator("title", "message")
    @classmethod
    def not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v.strip()


class NotificationResponse(BaseModel):
    """Schema for notification response"""

    id: int
    userId: str
    title: str
    message: str
    type: str
    event: Optional[str] = None
    appointmentId: Optional[int] = None
    isRead: bool
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, notification) -> "NotificationResponse":
        return cls(
            id=notification.id,
            userId=notification.user_id,
            title=notification.title,
            message=notification.message,
            type=notification.type,
            event=notification.event,
            appointmentId=notification.appointment_id,
            isRead=notification.is_read,
            created_at=notification.created_at,
        )


class UnreadCountResponse(BaseModel):
    unread_count: int


class MarkAllReadResponse(BaseModel):
    message: str
    updated: int
