"""Hierarchy-aware authorization checks for workspaces and projects.

Every answer comes from the membership tables at call time; nothing is cached,
so a role change is visible to the very next request. Checks return booleans
(or None for "no role"); callers turn False into ForbiddenError.

Workspace membership is always explicit. Project membership may be inherited:
workspace VIEWER access implies project VIEWER, and the first check that relies
on that inheritance materializes it as an explicit ProjectMember row.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from collabhub.models.project import Project, ProjectMember
from collabhub.models.workspace import WorkspaceMember
from collabhub.roles import ProjectRole, WorkspaceRole

logger = logging.getLogger(__name__)

SCOPE_WORKSPACE = "workspace"
SCOPE_PROJECT = "project"


class RbacResolver:
    def __init__(self, db: Session) -> None:
        self.db = db

    def workspace_role(self, workspace_id: uuid.UUID, user_id: uuid.UUID) -> WorkspaceRole | None:
        member = (
            self.db.query(WorkspaceMember)
            .filter(WorkspaceMember.workspace_id == workspace_id, WorkspaceMember.user_id == user_id)
            .first()
        )
        return WorkspaceRole(member.role) if member else None

    def has_workspace_access(
        self,
        workspace_id: uuid.UUID,
        user_id: uuid.UUID,
        minimum: WorkspaceRole = WorkspaceRole.VIEWER,
    ) -> bool:
        role = self.workspace_role(workspace_id, user_id)
        return role is not None and role.satisfies(minimum)

    def project_role(self, project_id: uuid.UUID, user_id: uuid.UUID) -> ProjectRole | None:
        member = (
            self.db.query(ProjectMember)
            .filter(ProjectMember.project_id == project_id, ProjectMember.user_id == user_id)
            .first()
        )
        return ProjectRole(member.role) if member else None

    def has_project_access(
        self,
        project_id: uuid.UUID,
        user_id: uuid.UUID,
        minimum: ProjectRole = ProjectRole.VIEWER,
        provision: bool = True,
    ) -> bool:
        """True when the user's project role (explicit or inherited) is at least ``minimum``.

        With ``provision`` an inherited VIEWER grant that satisfies ``minimum`` is
        written as an explicit row and committed; a denied check writes nothing.
        Call this before opening a unit of work, never inside one.
        """
        role = self.project_role(project_id, user_id)
        if role is not None:
            return role.satisfies(minimum)

        project = self.db.get(Project, project_id)
        if project is None:
            return False
        if not self.has_workspace_access(project.workspace_id, user_id, WorkspaceRole.VIEWER):
            return False

        granted = ProjectRole.VIEWER.satisfies(minimum)
        if provision and granted:
            self._provision_viewer(project_id, user_id)
        return granted

    def count_holders(
        self,
        scope: str,
        scope_id: uuid.UUID,
        role: WorkspaceRole | ProjectRole,
        excluding_user_id: uuid.UUID | None = None,
    ) -> int:
        """Number of members holding exactly ``role`` in the workspace or project."""
        if scope == SCOPE_WORKSPACE:
            model, scope_column = WorkspaceMember, WorkspaceMember.workspace_id
        elif scope == SCOPE_PROJECT:
            model, scope_column = ProjectMember, ProjectMember.project_id
        else:
            raise ValueError(f"unknown scope: {scope}")
        query = self.db.query(model).filter(scope_column == scope_id, model.role == role)
        if excluding_user_id is not None:
            query = query.filter(model.user_id != excluding_user_id)
        return query.count()

    def _provision_viewer(self, project_id: uuid.UUID, user_id: uuid.UUID) -> None:
        self.db.add(ProjectMember(project_id=project_id, user_id=user_id, role=ProjectRole.VIEWER))
        try:
            self.db.commit()
        except IntegrityError:
            # A concurrent request provisioned the same row first.
            self.db.rollback()
            return
        logger.info("project_viewer_provisioned: project_id=%s user_id=%s", project_id, user_id)
