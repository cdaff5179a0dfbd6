"""Project flows: creation with its PROJECT_LEAD membership and project membership management."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from collabhub.db.transaction import unit_of_work
from collabhub.errors import ForbiddenError, UserInputError
from collabhub.models.project import Project, ProjectMember
from collabhub.models.user import User
from collabhub.roles import ProjectRole, WorkspaceRole
from collabhub.schemas.auth import UserPublic
from collabhub.schemas.membership import MemberResult
from collabhub.schemas.project import (
    AddProjectMemberInput,
    CreateProjectInput,
    UpdateProjectMemberRoleInput,
)
from collabhub.services.audit import AuditLogger
from collabhub.services.rbac import SCOPE_PROJECT, RbacResolver
from collabhub.services.role_guard import ensure_role_change_allowed

logger = logging.getLogger(__name__)


class ProjectService:
    def __init__(
        self,
        db: Session,
        rbac: RbacResolver | None = None,
        audit: AuditLogger | None = None,
    ) -> None:
        self.db = db
        self.rbac = rbac or RbacResolver(db)
        self.audit = audit or AuditLogger(db)

    def create_project(
        self,
        data: CreateProjectInput,
        user: User,
        ip_address: str | None = None,
    ) -> Project:
        """Create a project and its creator's PROJECT_LEAD membership atomically. Needs workspace MEMBER."""
        if not self.rbac.has_workspace_access(data.workspace_id, user.id, WorkspaceRole.MEMBER):
            raise ForbiddenError(
                "Insufficient workspace permissions to create a project",
                required_role=WorkspaceRole.MEMBER.value,
                workspace_id=str(data.workspace_id),
            )
        if not data.name.strip():
            raise UserInputError("Project name is required")
        with unit_of_work(self.db):
            project = Project(
                name=data.name,
                description=data.description,
                workspace_id=data.workspace_id,
                created_by=user.id,
            )
            self.db.add(project)
            self.db.flush()
            self.db.add(ProjectMember(project_id=project.id, user_id=user.id, role=ProjectRole.PROJECT_LEAD))
            self.audit.record(
                "PROJECT_CREATED",
                user_id=user.id,
                ip_address=ip_address,
                details={"project_id": project.id, "workspace_id": data.workspace_id, "name": project.name},
            )
        logger.info("project_created: project_id=%s lead_id=%s", project.id, user.id)
        return project

    def get_project(self, project_id: uuid.UUID, user: User) -> Project | None:
        if not self.rbac.has_project_access(project_id, user.id, ProjectRole.VIEWER):
            return None
        return self.db.get(Project, project_id)

    def list_workspace_projects(self, workspace_id: uuid.UUID, user: User) -> list[Project]:
        if not self.rbac.has_workspace_access(workspace_id, user.id, WorkspaceRole.VIEWER):
            raise ForbiddenError(
                "Not a member of this workspace",
                required_role=WorkspaceRole.VIEWER.value,
                workspace_id=str(workspace_id),
            )
        return (
            self.db.query(Project)
            .filter(Project.workspace_id == workspace_id)
            .order_by(Project.created_at.desc())
            .all()
        )

    def add_member(
        self,
        data: AddProjectMemberInput,
        requester: User,
        ip_address: str | None = None,
    ) -> ProjectMember:
        project = self._get_project_or_fail(data.project_id)
        self._require_manager(project, requester)
        target = self.db.get(User, data.user_id)
        if target is None:
            raise UserInputError("User not found")
        if not self.rbac.has_workspace_access(project.workspace_id, target.id, WorkspaceRole.VIEWER):
            raise UserInputError("User must be a member of the workspace first", user_id=str(target.id))
        if self.rbac.project_role(project.id, target.id) is not None:
            raise UserInputError("User is already a member of this project")

        try:
            with unit_of_work(self.db):
                member = ProjectMember(project_id=project.id, user_id=target.id, role=data.role)
                self.db.add(member)
                self.audit.record(
                    "PROJECT_MEMBER_ADDED",
                    user_id=requester.id,
                    ip_address=ip_address,
                    details={"project_id": project.id, "member_id": target.id, "role": data.role},
                )
        except IntegrityError:
            # Lost a race with a concurrent add, or with viewer auto-provisioning.
            raise UserInputError("User is already a member of this project") from None
        return member

    def update_member_role(
        self,
        data: UpdateProjectMemberRoleInput,
        requester: User,
        ip_address: str | None = None,
    ) -> MemberResult:
        """Change a member's project role. A sole PROJECT_LEAD cannot demote themselves."""
        project = self._get_project_or_fail(data.project_id)
        self._require_manager(project, requester)
        member = (
            self.db.query(ProjectMember)
            .filter(ProjectMember.project_id == project.id, ProjectMember.user_id == data.user_id)
            .first()
        )
        if member is None:
            raise UserInputError("User is not a member of this project")
        old_role = ProjectRole(member.role)
        ensure_role_change_allowed(
            self.rbac,
            scope=SCOPE_PROJECT,
            scope_id=project.id,
            requester_id=requester.id,
            target_id=data.user_id,
            current_role=old_role,
            new_role=data.role,
        )
        with unit_of_work(self.db):
            member.role = data.role
            self.audit.record(
                "PROJECT_ROLE_UPDATED",
                user_id=requester.id,
                ip_address=ip_address,
                details={
                    "project_id": project.id,
                    "member_id": data.user_id,
                    "old_role": old_role,
                    "new_role": data.role,
                },
            )
        return MemberResult(role=ProjectRole(member.role).value, user=UserPublic.model_validate(member.user))

    def delete_project(self, project_id: uuid.UUID, requester: User, ip_address: str | None = None) -> None:
        """Delete a project with its memberships, tasks and assignments."""
        project = self._get_project_or_fail(project_id)
        self._require_manager(project, requester)
        with unit_of_work(self.db):
            self.audit.record(
                "PROJECT_DELETED",
                user_id=requester.id,
                ip_address=ip_address,
                details={"project_id": project.id, "workspace_id": project.workspace_id, "name": project.name},
            )
            self.db.delete(project)

    def list_members(self, project_id: uuid.UUID, requester: User) -> list[ProjectMember]:
        if not self.rbac.has_project_access(project_id, requester.id, ProjectRole.VIEWER):
            raise ForbiddenError(
                "Not a member of this project",
                required_role=ProjectRole.VIEWER.value,
                project_id=str(project_id),
            )
        members = (
            self.db.query(ProjectMember)
            .filter(ProjectMember.project_id == project_id)
            .order_by(ProjectMember.created_at.asc())
            .all()
        )
        return sorted(members, key=lambda m: -ProjectRole(m.role).rank)

    def can_manage(self, project: Project, user: User) -> bool:
        """PROJECT_LEAD of the project or OWNER of its workspace."""
        if self.rbac.project_role(project.id, user.id) == ProjectRole.PROJECT_LEAD:
            return True
        return self.rbac.workspace_role(project.workspace_id, user.id) == WorkspaceRole.OWNER

    def _require_manager(self, project: Project, user: User) -> None:
        if not self.can_manage(project, user):
            raise ForbiddenError(
                "Only the project lead or workspace owner can manage this project",
                required_role=ProjectRole.PROJECT_LEAD.value,
                project_id=str(project.id),
            )

    def _get_project_or_fail(self, project_id: uuid.UUID) -> Project:
        project = self.db.get(Project, project_id)
        if project is None:
            raise UserInputError("Project not found")
        return project
