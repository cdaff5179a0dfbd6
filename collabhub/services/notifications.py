"""In-app notifications.

Writes (``notify_*``) only add rows to the caller's session so a notification
persists together with the write that caused it, or not at all. Delivery
channels beyond the persisted row are out of scope.
"""

from __future__ import annotations

import uuid

from sqlalchemy.orm import Session

from collabhub.errors import UserInputError
from collabhub.models.notification import Notification
from collabhub.models.task import Task
from collabhub.models.user import User
from collabhub.models.workspace import Workspace
from collabhub.models._types import utcnow
from collabhub.roles import NotificationStatus

LIST_LIMIT = 50


class NotificationService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def notify_task_assignment(self, recipient_id: uuid.UUID, task: Task) -> Notification:
        notification = Notification(
            title="New Task Assignment",
            body=f'You have been assigned to task: "{task.title}"',
            recipient_id=recipient_id,
            related_entity_id=task.id,
            entity_type="TASK",
        )
        self.db.add(notification)
        return notification

    def notify_workspace_invite(self, recipient_id: uuid.UUID, workspace: Workspace, inviter: User) -> Notification:
        notification = Notification(
            title="Workspace Invitation",
            body=f'You have been added to workspace "{workspace.name}" by {inviter.email}',
            recipient_id=recipient_id,
            related_entity_id=workspace.id,
            entity_type="WORKSPACE",
        )
        self.db.add(notification)
        return notification

    def list_for_user(self, user: User, status: NotificationStatus | None = None) -> list[Notification]:
        q = self.db.query(Notification).filter(Notification.recipient_id == user.id)
        if status is not None:
            q = q.filter(Notification.status == status)
        return q.order_by(Notification.created_at.desc()).limit(LIST_LIMIT).all()

    def mark_as_read(self, notification_id: uuid.UUID, user: User) -> Notification:
        notification = self._get_owned(notification_id, user)
        notification.status = NotificationStatus.SEEN
        notification.read_at = utcnow()
        self.db.commit()
        self.db.refresh(notification)
        return notification

    def mark_all_as_read(self, user: User) -> int:
        updated = (
            self.db.query(Notification)
            .filter(
                Notification.recipient_id == user.id,
                Notification.status == NotificationStatus.DELIVERED,
            )
            .update({"status": NotificationStatus.SEEN, "read_at": utcnow()})
        )
        self.db.commit()
        return updated

    def unread_count(self, user: User) -> int:
        return (
            self.db.query(Notification)
            .filter(
                Notification.recipient_id == user.id,
                Notification.status == NotificationStatus.DELIVERED,
            )
            .count()
        )

    def delete(self, notification_id: uuid.UUID, user: User) -> None:
        notification = self._get_owned(notification_id, user)
        self.db.delete(notification)
        self.db.commit()

    def _get_owned(self, notification_id: uuid.UUID, user: User) -> Notification:
        notification = (
            self.db.query(Notification)
            .filter(Notification.id == notification_id, Notification.recipient_id == user.id)
            .first()
        )
        if notification is None:
            raise UserInputError("Notification not found or access denied")
        return notification
