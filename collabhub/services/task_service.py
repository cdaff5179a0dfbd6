"""Task flows with assignment diffing.

Assignments are replaced wholesale on every write that supplies them. The
previous assignee set is read before the replace so that only users who are
newly assigned get a notification; removed users get none. Notifications are
written in the same unit of work as the task. The status-change event goes out
only after commit.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable

from sqlalchemy.orm import Session

from collabhub.db.transaction import unit_of_work
from collabhub.errors import ForbiddenError, UserInputError
from collabhub.models._types import utcnow
from collabhub.models.project import Project
from collabhub.models.task import Task, TaskAssignment
from collabhub.models.user import User
from collabhub.roles import ProjectRole, TaskStatus
from collabhub.schemas.task import CreateTaskInput, UpdateTaskInput
from collabhub.services.audit import AuditLogger
from collabhub.services.events import EventBus, get_event_bus, task_status_channel
from collabhub.services.notifications import NotificationService
from collabhub.services.rbac import RbacResolver

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = ("title", "description", "status", "due_date")


class TaskService:
    def __init__(
        self,
        db: Session,
        rbac: RbacResolver | None = None,
        notifications: NotificationService | None = None,
        audit: AuditLogger | None = None,
        events: EventBus | None = None,
    ) -> None:
        self.db = db
        self.rbac = rbac or RbacResolver(db)
        self.notifications = notifications or NotificationService(db)
        self.audit = audit or AuditLogger(db)
        self.events = events or get_event_bus()

    def create_task(self, data: CreateTaskInput, user: User, ip_address: str | None = None) -> Task:
        project = self.db.get(Project, data.project_id)
        if project is None:
            raise UserInputError("Project not found")
        if not self.rbac.has_project_access(project.id, user.id, ProjectRole.CONTRIBUTOR):
            raise ForbiddenError(
                "Insufficient project permissions to create tasks",
                required_role=ProjectRole.CONTRIBUTOR.value,
                project_id=str(project.id),
            )
        self._check_assignees(project.id, data.assignee_ids)

        with unit_of_work(self.db):
            task = Task(
                title=data.title,
                description=data.description,
                status=data.status,
                project_id=project.id,
                created_by=user.id,
                due_date=data.due_date,
            )
            self.db.add(task)
            self.db.flush()
            self._replace_assignments(task, data.assignee_ids)
            for assignee_id in data.assignee_ids:
                self.notifications.notify_task_assignment(assignee_id, task)
            self.audit.record(
                "TASK_CREATED",
                user_id=user.id,
                ip_address=ip_address,
                details={"task_id": task.id, "project_id": project.id, "assignee_ids": data.assignee_ids},
            )

        self._publish_status(task, user, previous_status=None)
        return task

    def update_task(self, data: UpdateTaskInput, user: User, ip_address: str | None = None) -> Task:
        """Apply only the provided fields; notify assignees that were not assigned before."""
        provided = data.model_fields_set - {"task_id"}
        if not provided:
            raise UserInputError("No fields to update")
        task = self.db.get(Task, data.task_id)
        if task is None:
            raise UserInputError("Task not found")
        if not self.can_update_task(task, user):
            raise ForbiddenError(
                "Insufficient permissions to update this task",
                required_role=ProjectRole.CONTRIBUTOR.value,
                task_id=str(task.id),
            )

        new_assignees = None
        if "assignee_ids" in provided:
            new_assignees = data.assignee_ids or []
            self._check_assignees(task.project_id, new_assignees)

        old_status = TaskStatus(task.status)
        old_assignees = set(task.assignee_ids)

        with unit_of_work(self.db):
            for field in _UPDATABLE_FIELDS:
                if field in provided:
                    setattr(task, field, getattr(data, field))
            task.updated_at = utcnow()
            added: list[uuid.UUID] = []
            if new_assignees is not None:
                self._replace_assignments(task, new_assignees)
                added = [uid for uid in new_assignees if uid not in old_assignees]
                for assignee_id in added:
                    self.notifications.notify_task_assignment(assignee_id, task)
            details = {"task_id": task.id, "fields": sorted(provided), "added_assignees": added}
            if "status" in provided and data.status != old_status:
                details.update(old_status=old_status.value, new_status=TaskStatus(data.status).value)
            self.audit.record("TASK_UPDATED", user_id=user.id, ip_address=ip_address, details=details)

        if TaskStatus(task.status) != old_status:
            self._publish_status(task, user, previous_status=old_status)
        return task

    def delete_task(self, task_id: uuid.UUID, user: User, ip_address: str | None = None) -> None:
        """PROJECT_LEAD of the task's project or the task's creator may delete it."""
        task = self.db.get(Task, task_id)
        if task is None:
            raise UserInputError("Task not found")
        is_lead = self.rbac.project_role(task.project_id, user.id) == ProjectRole.PROJECT_LEAD
        if not is_lead and task.created_by != user.id:
            raise ForbiddenError(
                "Only the project lead or the task creator can delete this task",
                required_role=ProjectRole.PROJECT_LEAD.value,
                task_id=str(task.id),
            )
        with unit_of_work(self.db):
            self.audit.record(
                "TASK_DELETED",
                user_id=user.id,
                ip_address=ip_address,
                details={"task_id": task.id, "project_id": task.project_id},
            )
            self.db.delete(task)

    def get_task(self, task_id: uuid.UUID, user: User) -> Task | None:
        task = self.db.get(Task, task_id)
        if task is None or not self.rbac.has_project_access(task.project_id, user.id, ProjectRole.VIEWER):
            return None
        return task

    def list_project_tasks(self, project_id: uuid.UUID, user: User) -> list[Task]:
        """Tasks grouped by status (TODO, IN_PROGRESS, DONE), newest first within a status."""
        if not self.rbac.has_project_access(project_id, user.id, ProjectRole.VIEWER):
            raise ForbiddenError(
                "Not a member of this project",
                required_role=ProjectRole.VIEWER.value,
                project_id=str(project_id),
            )
        tasks = (
            self.db.query(Task)
            .filter(Task.project_id == project_id)
            .order_by(Task.created_at.desc())
            .all()
        )
        return sorted(tasks, key=lambda t: TaskStatus(t.status).sort_order)

    def list_assigned_tasks(self, user: User, status: TaskStatus | None = None) -> list[Task]:
        query = (
            self.db.query(Task)
            .join(TaskAssignment, TaskAssignment.task_id == Task.id)
            .filter(TaskAssignment.user_id == user.id)
        )
        if status is not None:
            query = query.filter(Task.status == status)
        return query.order_by(Task.due_date.is_(None), Task.due_date.asc(), Task.created_at.desc()).all()

    def can_update_task(self, task: Task, user: User) -> bool:
        """PROJECT_LEAD always; CONTRIBUTOR when assigned or when the task has no assignees."""
        role = self.rbac.project_role(task.project_id, user.id)
        if role == ProjectRole.PROJECT_LEAD:
            return True
        if role == ProjectRole.CONTRIBUTOR:
            assignees = task.assignee_ids
            return not assignees or user.id in assignees
        return False

    def _check_assignees(self, project_id: uuid.UUID, assignee_ids: Iterable[uuid.UUID]) -> None:
        for assignee_id in assignee_ids:
            if not self.rbac.has_project_access(project_id, assignee_id, ProjectRole.VIEWER, provision=False):
                raise UserInputError(
                    f"User {assignee_id} is not a member of this project",
                    user_id=str(assignee_id),
                )

    def _replace_assignments(self, task: Task, assignee_ids: list[uuid.UUID]) -> None:
        if task.assignments:
            task.assignments.clear()
            # Old rows must be gone before re-inserting the same (task, user) pairs.
            self.db.flush()
        task.assignments.extend(TaskAssignment(user_id=uid) for uid in assignee_ids)

    def _publish_status(self, task: Task, user: User, previous_status: TaskStatus | None) -> None:
        try:
            workspace_id = self.db.get(Project, task.project_id).workspace_id
            self.events.publish(
                task_status_channel(workspace_id),
                {
                    "task_id": str(task.id),
                    "project_id": str(task.project_id),
                    "status": TaskStatus(task.status).value,
                    "previous_status": previous_status.value if previous_status else None,
                    "updated_by": str(user.id),
                },
            )
        except Exception:
            logger.exception("task_status_publish_failed: task_id=%s", task.id)
