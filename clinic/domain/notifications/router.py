"""Notification router - in-app notifications and the realtime push channel"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect
from sqlalchemy.orm import Session

from ...auth import Principal, decode_token, get_current_principal, require_staff
from ...database import get_db
from ...services.realtime import realtime_hub, user_topic
from .schemas import MarkAllReadResponse, NotificationCreate, NotificationResponse, UnreadCountResponse
from .service import NotificationDispatcher, NotificationEvent

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


def get_notification_dispatcher(db: Session = Depends(get_db)) -> NotificationDispatcher:
    """Dependency injection for NotificationDispatcher"""
    return NotificationDispatcher(db, realtime_hub)


@router.get("", response_model=list[NotificationResponse])
async def get_notifications(
    unread_only: bool = Query(False),
    limit: Optional[int] = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_current_principal),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """Current user's notifications, newest first"""
    notifications = dispatcher.list_notifications(principal.user_id, unread_only, limit, offset)
    return [NotificationResponse.from_model(n) for n in notifications]


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    principal: Principal = Depends(get_current_principal),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    return UnreadCountResponse(unread_count=dispatcher.unread_count(principal.user_id))


@router.patch("/mark-all-read", response_model=MarkAllReadResponse)
async def mark_all_read(
    principal: Principal = Depends(get_current_principal),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    updated = dispatcher.mark_all_read(principal.user_id)
    return MarkAllReadResponse(message="Notifications marked as read", updated=updated)


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: int,
    principal: Principal = Depends(get_current_principal),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    return NotificationResponse.from_model(dispatcher.mark_read(notification_id, principal.user_id))


@router.post("", response_model=NotificationResponse, status_code=201)
async def create_notification(
    data: NotificationCreate,
    principal: Principal = Depends(require_staff),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """Staff-issued notification (test results ready, payment received, announcements)"""
    notification = await dispatcher.dispatch(
        NotificationEvent(
            user_id=data.userId,
            title=data.title,
            message=data.message,
            type=data.type,
            event=data.event,
            appointment_id=data.appointmentId,
        )
    )
    return NotificationResponse.from_model(notification)


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket, token: str = Query(...)):
    """
    Push channel for the authenticated user.
    Clients may send "ping" to keep the connection alive; anything else is ignored.
    """
    try:
        principal = decode_token(token)
    except HTTPException:
        await websocket.close(code=1008)
        return

    await websocket.accept()
    unsubscribe = realtime_hub.subscribe(user_topic(principal.user_id), websocket.send_json)
    logger.info(f"🔌 WebSocket connected for {principal.user_id}")

    try:
        while True:
            message = await websocket.receive_text()
            if message == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        logger.info(f"🔌 WebSocket disconnected for {principal.user_id}")
    finally:
        unsubscribe()
