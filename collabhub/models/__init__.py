"""SQLAlchemy models."""

from collabhub.models.audit_log import AuditLog
from collabhub.models.notification import Notification
from collabhub.models.project import Project, ProjectMember
from collabhub.models.task import Task, TaskAssignment
from collabhub.models.user import User
from collabhub.models.user_device import UserDevice
from collabhub.models.workspace import Workspace, WorkspaceMember

__all__ = [
    "AuditLog",
    "Notification",
    "Project",
    "ProjectMember",
    "Task",
    "TaskAssignment",
    "User",
    "UserDevice",
    "Workspace",
    "WorkspaceMember",
]
