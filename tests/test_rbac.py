"""RBAC resolver tests: rank comparison and inherited project access."""

from __future__ import annotations

import uuid

import pytest

from collabhub.models.project import ProjectMember
from collabhub.roles import ProjectRole, WorkspaceRole
from collabhub.services.rbac import SCOPE_PROJECT, SCOPE_WORKSPACE, RbacResolver


@pytest.fixture
def rbac(db) -> RbacResolver:
    return RbacResolver(db)


def _explicit_rows(db, project_id, user_id) -> int:
    return (
        db.query(ProjectMember)
        .filter(ProjectMember.project_id == project_id, ProjectMember.user_id == user_id)
        .count()
    )


class TestWorkspaceAccess:
    @pytest.mark.parametrize("role", [WorkspaceRole.MEMBER, WorkspaceRole.VIEWER])
    def test_access_is_rank_monotonic(self, rbac, make_user, workspace_factory, role):
        owner, user = make_user(), make_user()
        workspace = workspace_factory(owner, {user: role})
        for minimum in WorkspaceRole:
            assert rbac.has_workspace_access(workspace.id, user.id, minimum) == role.satisfies(minimum)

    def test_owner_implies_every_lower_role(self, rbac, make_user, workspace_factory):
        owner = make_user()
        workspace = workspace_factory(owner)
        assert rbac.has_workspace_access(workspace.id, owner.id, WorkspaceRole.OWNER)
        assert rbac.has_workspace_access(workspace.id, owner.id, WorkspaceRole.MEMBER)
        assert rbac.has_workspace_access(workspace.id, owner.id, WorkspaceRole.VIEWER)

    def test_non_member_has_no_access_and_no_role(self, rbac, make_user, workspace_factory):
        workspace = workspace_factory(make_user())
        stranger = make_user()
        assert rbac.workspace_role(workspace.id, stranger.id) is None
        assert not rbac.has_workspace_access(workspace.id, stranger.id, WorkspaceRole.VIEWER)

    def test_role_changes_are_visible_immediately(self, db, rbac, make_user, workspace_factory):
        owner, user = make_user(), make_user()
        workspace = workspace_factory(owner, {user: WorkspaceRole.VIEWER})
        assert not rbac.has_workspace_access(workspace.id, user.id, WorkspaceRole.MEMBER)
        member = next(m for m in workspace.members if m.user_id == user.id)
        member.role = WorkspaceRole.MEMBER
        db.commit()
        assert rbac.has_workspace_access(workspace.id, user.id, WorkspaceRole.MEMBER)


class TestProjectAccess:
    def test_workspace_member_gets_viewer_and_row_is_materialized(
        self, db, rbac, make_user, workspace_factory, project_factory
    ):
        owner, member = make_user(), make_user()
        workspace = workspace_factory(owner, {member: WorkspaceRole.MEMBER})
        project = project_factory(workspace, owner)
        assert _explicit_rows(db, project.id, member.id) == 0

        assert rbac.has_project_access(project.id, member.id, ProjectRole.VIEWER)

        assert _explicit_rows(db, project.id, member.id) == 1
        assert rbac.project_role(project.id, member.id) == ProjectRole.VIEWER

    def test_inherited_viewer_does_not_satisfy_contributor(
        self, db, rbac, make_user, workspace_factory, project_factory
    ):
        owner, member = make_user(), make_user()
        workspace = workspace_factory(owner, {member: WorkspaceRole.MEMBER})
        project = project_factory(workspace, owner)
        assert not rbac.has_project_access(project.id, member.id, ProjectRole.CONTRIBUTOR)
        # A denied check leaves no materialized row behind
        assert _explicit_rows(db, project.id, member.id) == 0

    def test_repeated_checks_provision_once(self, db, rbac, make_user, workspace_factory, project_factory):
        owner, viewer = make_user(), make_user()
        workspace = workspace_factory(owner, {viewer: WorkspaceRole.VIEWER})
        project = project_factory(workspace, owner)
        for _ in range(3):
            assert rbac.has_project_access(project.id, viewer.id)
        assert _explicit_rows(db, project.id, viewer.id) == 1

    def test_provision_false_leaves_no_row(self, db, rbac, make_user, workspace_factory, project_factory):
        owner, member = make_user(), make_user()
        workspace = workspace_factory(owner, {member: WorkspaceRole.MEMBER})
        project = project_factory(workspace, owner)
        assert rbac.has_project_access(project.id, member.id, provision=False)
        assert _explicit_rows(db, project.id, member.id) == 0

    def test_outsider_gets_nothing(self, db, rbac, make_user, workspace_factory, project_factory):
        owner, outsider = make_user(), make_user()
        project = project_factory(workspace_factory(owner), owner)
        assert not rbac.has_project_access(project.id, outsider.id)
        assert _explicit_rows(db, project.id, outsider.id) == 0

    def test_unknown_project(self, rbac, make_user):
        assert not rbac.has_project_access(uuid.uuid4(), make_user().id)

    def test_explicit_role_is_compared_by_rank(self, rbac, make_user, workspace_factory, project_factory):
        owner = make_user()
        project = project_factory(workspace_factory(owner), owner)
        for minimum in ProjectRole:
            assert rbac.has_project_access(project.id, owner.id, minimum)

    def test_project_rights_never_elevate_workspace_rights(
        self, rbac, make_user, workspace_factory, project_factory
    ):
        owner, viewer = make_user(), make_user()
        workspace = workspace_factory(owner, {viewer: WorkspaceRole.VIEWER})
        project = project_factory(workspace, owner)
        rbac.db.add(ProjectMember(project_id=project.id, user_id=viewer.id, role=ProjectRole.PROJECT_LEAD))
        rbac.db.commit()
        assert rbac.has_project_access(project.id, viewer.id, ProjectRole.PROJECT_LEAD)
        assert not rbac.has_workspace_access(workspace.id, viewer.id, WorkspaceRole.MEMBER)


class TestCountHolders:
    def test_counts_role_holders_excluding_user(self, rbac, make_user, workspace_factory, project_factory):
        owner, second = make_user(), make_user()
        workspace = workspace_factory(owner, {second: WorkspaceRole.MEMBER})
        project = project_factory(workspace, owner)

        assert rbac.count_holders(SCOPE_WORKSPACE, workspace.id, WorkspaceRole.OWNER) == 1
        assert rbac.count_holders(SCOPE_WORKSPACE, workspace.id, WorkspaceRole.OWNER, excluding_user_id=owner.id) == 0
        assert rbac.count_holders(SCOPE_PROJECT, project.id, ProjectRole.PROJECT_LEAD) == 1

    def test_unknown_scope(self, rbac):
        with pytest.raises(ValueError):
            rbac.count_holders("task", uuid.uuid4(), ProjectRole.VIEWER)
