"""API routes for the notification center."""
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from app.core.auth import SessionContext, get_session_context, require_roles
from app.models.logistics import Notification, NotificationCreateRequest
from app.services.database import database

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=List[Notification])
def list_notifications(
    unread_only: bool = Query(default=False),
    context: SessionContext = Depends(get_session_context),
):
    return database.list_notifications(unread_only=unread_only)


@router.get("/unread-count")
def unread_count(context: SessionContext = Depends(get_session_context)):
    return {"unread": database.unread_count()}


@router.post("", response_model=Notification)
def create_notification(
    request: NotificationCreateRequest,
    context: SessionContext = Depends(require_roles("admin", "logistics")),
):
    return database.create_notification(request)


@router.post("/read-all")
def mark_all_read(context: SessionContext = Depends(get_session_context)):
    return {"marked": database.mark_all_notifications_as_read()}


@router.post("/{notification_id}/read", response_model=Notification)
def mark_read(
    notification_id: str,
    context: SessionContext = Depends(get_session_context),
):
    try:
        return database.mark_notification_as_read(notification_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Notification not found")
