"""Workspace flows: creation with its OWNER membership, membership management, stats."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from collabhub.db.transaction import unit_of_work
from collabhub.errors import AuthenticationError, ForbiddenError, UserInputError
from collabhub.models.project import Project, ProjectMember
from collabhub.models.task import Task, TaskAssignment
from collabhub.models.user import User
from collabhub.models.workspace import Workspace, WorkspaceMember
from collabhub.roles import TaskStatus, WorkspaceRole
from collabhub.schemas.auth import UserPublic
from collabhub.schemas.membership import MemberResult
from collabhub.schemas.workspace import (
    AddWorkspaceMemberInput,
    CreateWorkspaceInput,
    UpdateWorkspaceMemberRoleInput,
    WorkspaceStats,
    WorkspaceSummary,
)
from collabhub.services.audit import AuditLogger
from collabhub.services.notifications import NotificationService
from collabhub.services.rbac import SCOPE_WORKSPACE, RbacResolver
from collabhub.services.role_guard import ensure_role_change_allowed

logger = logging.getLogger(__name__)


class WorkspaceService:
    def __init__(
        self,
        db: Session,
        rbac: RbacResolver | None = None,
        audit: AuditLogger | None = None,
        notifications: NotificationService | None = None,
    ) -> None:
        self.db = db
        self.rbac = rbac or RbacResolver(db)
        self.audit = audit or AuditLogger(db)
        self.notifications = notifications or NotificationService(db)

    def create_workspace(
        self,
        data: CreateWorkspaceInput,
        user: User,
        ip_address: str | None = None,
    ) -> Workspace:
        """Create a workspace and its creator's OWNER membership atomically."""
        if user.is_banned:
            raise AuthenticationError("Account is banned", reason="banned")
        if not data.name.strip():
            raise UserInputError("Workspace name is required")
        with unit_of_work(self.db):
            workspace = Workspace(name=data.name, description=data.description, created_by=user.id)
            self.db.add(workspace)
            self.db.flush()
            self.db.add(WorkspaceMember(workspace_id=workspace.id, user_id=user.id, role=WorkspaceRole.OWNER))
            self.audit.record(
                "WORKSPACE_CREATED",
                user_id=user.id,
                ip_address=ip_address,
                details={"workspace_id": workspace.id, "name": workspace.name},
            )
        logger.info("workspace_created: workspace_id=%s owner_id=%s", workspace.id, user.id)
        return workspace

    def get_workspace(self, workspace_id: uuid.UUID, user: User) -> Workspace | None:
        if not self.rbac.has_workspace_access(workspace_id, user.id):
            return None
        return self.db.get(Workspace, workspace_id)

    def list_user_workspaces(self, user: User) -> list[WorkspaceSummary]:
        counted_members = aliased(WorkspaceMember)
        member_count = (
            select(func.count(counted_members.id))
            .where(counted_members.workspace_id == Workspace.id)
            .correlate(Workspace)
            .scalar_subquery()
        )
        project_count = (
            select(func.count(Project.id))
            .where(Project.workspace_id == Workspace.id)
            .correlate(Workspace)
            .scalar_subquery()
        )
        rows = (
            self.db.query(Workspace, WorkspaceMember.role, member_count, project_count)
            .join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
            .filter(WorkspaceMember.user_id == user.id)
            .order_by(Workspace.created_at.desc())
            .all()
        )
        return [
            WorkspaceSummary(
                id=workspace.id,
                name=workspace.name,
                description=workspace.description,
                created_by=workspace.created_by,
                created_at=workspace.created_at,
                updated_at=workspace.updated_at,
                role=role,
                member_count=members or 0,
                project_count=projects or 0,
            )
            for workspace, role, members, projects in rows
        ]

    def add_member(
        self,
        data: AddWorkspaceMemberInput,
        requester: User,
        ip_address: str | None = None,
    ) -> WorkspaceMember:
        """Add an existing user to the workspace and send them an invitation notification."""
        self._require_role(data.workspace_id, requester, WorkspaceRole.OWNER, "Only workspace owners can add members")
        if data.role == WorkspaceRole.OWNER:
            raise UserInputError("Cannot grant the OWNER role")
        target = self.db.get(User, data.user_id)
        if target is None:
            raise UserInputError("User not found")
        if self.rbac.workspace_role(data.workspace_id, target.id) is not None:
            raise UserInputError("User is already a member of this workspace")

        workspace = self.db.get(Workspace, data.workspace_id)
        try:
            with unit_of_work(self.db):
                member = WorkspaceMember(workspace_id=workspace.id, user_id=target.id, role=data.role)
                self.db.add(member)
                self.notifications.notify_workspace_invite(target.id, workspace, requester)
                self.audit.record(
                    "MEMBER_ADDED",
                    user_id=requester.id,
                    ip_address=ip_address,
                    details={"workspace_id": workspace.id, "member_id": target.id, "role": data.role},
                )
        except IntegrityError:
            # Lost a race with a concurrent add of the same user.
            raise UserInputError("User is already a member of this workspace") from None
        return member

    def remove_member(
        self,
        workspace_id: uuid.UUID,
        user_id: uuid.UUID,
        requester: User,
        ip_address: str | None = None,
    ) -> None:
        """Remove a member together with their project memberships and task assignments inside this workspace."""
        self._require_role(workspace_id, requester, WorkspaceRole.OWNER, "Only workspace owners can remove members")
        if user_id == requester.id:
            raise UserInputError("Cannot remove yourself from the workspace")
        member = self._get_member(workspace_id, user_id)
        if member.role == WorkspaceRole.OWNER:
            raise UserInputError("Cannot remove the workspace owner")

        project_ids = [
            row.id for row in self.db.query(Project.id).filter(Project.workspace_id == workspace_id).all()
        ]
        task_ids = []
        if project_ids:
            task_ids = [row.id for row in self.db.query(Task.id).filter(Task.project_id.in_(project_ids)).all()]
        with unit_of_work(self.db):
            removed = 0
            unassigned = 0
            if project_ids:
                removed = (
                    self.db.query(ProjectMember)
                    .filter(ProjectMember.user_id == user_id, ProjectMember.project_id.in_(project_ids))
                    .delete()
                )
            if task_ids:
                unassigned = (
                    self.db.query(TaskAssignment)
                    .filter(TaskAssignment.user_id == user_id, TaskAssignment.task_id.in_(task_ids))
                    .delete()
                )
            self.db.delete(member)
            self.audit.record(
                "MEMBER_REMOVED",
                user_id=requester.id,
                ip_address=ip_address,
                details={
                    "workspace_id": workspace_id,
                    "member_id": user_id,
                    "project_memberships_removed": removed,
                    "task_assignments_removed": unassigned,
                },
            )

    def update_member_role(
        self,
        data: UpdateWorkspaceMemberRoleInput,
        requester: User,
        ip_address: str | None = None,
    ) -> MemberResult:
        self._require_role(
            data.workspace_id, requester, WorkspaceRole.OWNER, "Only workspace owners can update member roles"
        )
        member = self._get_member(data.workspace_id, data.user_id)
        old_role = WorkspaceRole(member.role)
        ensure_role_change_allowed(
            self.rbac,
            scope=SCOPE_WORKSPACE,
            scope_id=data.workspace_id,
            requester_id=requester.id,
            target_id=data.user_id,
            current_role=old_role,
            new_role=data.role,
        )
        with unit_of_work(self.db):
            member.role = data.role
            self.audit.record(
                "ROLE_UPDATED",
                user_id=requester.id,
                ip_address=ip_address,
                details={
                    "workspace_id": data.workspace_id,
                    "member_id": data.user_id,
                    "old_role": old_role,
                    "new_role": data.role,
                },
            )
        return MemberResult(role=WorkspaceRole(member.role).value, user=UserPublic.model_validate(member.user))

    def list_members(self, workspace_id: uuid.UUID, requester: User) -> list[WorkspaceMember]:
        """Members ordered by role (OWNER first), then by join time."""
        self._require_role(workspace_id, requester, WorkspaceRole.VIEWER, "Not a member of this workspace")
        members = (
            self.db.query(WorkspaceMember)
            .filter(WorkspaceMember.workspace_id == workspace_id)
            .order_by(WorkspaceMember.created_at.asc())
            .all()
        )
        return sorted(members, key=lambda m: -WorkspaceRole(m.role).rank)

    def workspace_stats(self, workspace_id: uuid.UUID, requester: User) -> WorkspaceStats:
        self._require_role(workspace_id, requester, WorkspaceRole.VIEWER, "Not a member of this workspace")
        member_count = (
            self.db.query(func.count(WorkspaceMember.id))
            .filter(WorkspaceMember.workspace_id == workspace_id)
            .scalar()
        )
        project_count = (
            self.db.query(func.count(Project.id)).filter(Project.workspace_id == workspace_id).scalar()
        )
        tasks = self.db.query(Task).join(Project, Project.id == Task.project_id).filter(
            Project.workspace_id == workspace_id
        )
        return WorkspaceStats(
            member_count=member_count or 0,
            project_count=project_count or 0,
            task_count=tasks.count(),
            completed_task_count=tasks.filter(Task.status == TaskStatus.DONE).count(),
        )

    def _require_role(self, workspace_id: uuid.UUID, user: User, minimum: WorkspaceRole, message: str) -> None:
        if not self.rbac.has_workspace_access(workspace_id, user.id, minimum):
            raise ForbiddenError(message, required_role=minimum.value, workspace_id=str(workspace_id))

    def _get_member(self, workspace_id: uuid.UUID, user_id: uuid.UUID) -> WorkspaceMember:
        member = (
            self.db.query(WorkspaceMember)
            .filter(WorkspaceMember.workspace_id == workspace_id, WorkspaceMember.user_id == user_id)
            .first()
        )
        if member is None:
            raise UserInputError("User is not a member of this workspace")
        return member
