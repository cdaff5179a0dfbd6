"""Notification API routes."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends

from collabhub.api.deps import get_notification_service, require_auth
from collabhub.models.user import User
from collabhub.roles import NotificationStatus
from collabhub.schemas.notification import MarkAllReadResponse, NotificationRead, UnreadCountResponse
from collabhub.services.notifications import NotificationService

router = APIRouter()


@router.get("", response_model=list[NotificationRead])
def list_notifications(
    status: NotificationStatus | None = None,
    user: User = Depends(require_auth),
    service: NotificationService = Depends(get_notification_service),
) -> list[NotificationRead]:
    """The caller's 50 most recent notifications."""
    return [NotificationRead.model_validate(n) for n in service.list_for_user(user, status)]


@router.get("/unread-count", response_model=UnreadCountResponse)
def unread_count(
    user: User = Depends(require_auth),
    service: NotificationService = Depends(get_notification_service),
) -> UnreadCountResponse:
    return UnreadCountResponse(count=service.unread_count(user))


@router.post("/read-all", response_model=MarkAllReadResponse)
def mark_all_read(
    user: User = Depends(require_auth),
    service: NotificationService = Depends(get_notification_service),
) -> MarkAllReadResponse:
    return MarkAllReadResponse(updated=service.mark_all_as_read(user))


@router.post("/{notification_id}/read", response_model=NotificationRead)
def mark_read(
    notification_id: uuid.UUID,
    user: User = Depends(require_auth),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationRead:
    return NotificationRead.model_validate(service.mark_as_read(notification_id, user))


@router.delete("/{notification_id}", status_code=204)
def delete_notification(
    notification_id: uuid.UUID,
    user: User = Depends(require_auth),
    service: NotificationService = Depends(get_notification_service),
) -> None:
    service.delete(notification_id, user)
