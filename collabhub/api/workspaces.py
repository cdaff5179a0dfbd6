"""Workspace API routes."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Request

from collabhub.api.deps import client_ip, get_project_service, get_workspace_service, require_auth
from collabhub.models.user import User
from collabhub.schemas.membership import MemberRead, MemberResult
from collabhub.schemas.project import ProjectRead
from collabhub.schemas.workspace import (
    AddWorkspaceMemberInput,
    CreateWorkspaceInput,
    UpdateWorkspaceMemberRoleInput,
    WorkspaceMemberBody,
    WorkspaceRead,
    WorkspaceRoleBody,
    WorkspaceStats,
    WorkspaceSummary,
)
from collabhub.services.project_service import ProjectService
from collabhub.services.workspace_service import WorkspaceService

router = APIRouter()


@router.post("", response_model=WorkspaceRead, status_code=201)
def create_workspace(
    body: CreateWorkspaceInput,
    request: Request,
    user: User = Depends(require_auth),
    service: WorkspaceService = Depends(get_workspace_service),
) -> WorkspaceRead:
    """Create a workspace owned by the caller."""
    workspace = service.create_workspace(body, user, ip_address=client_ip(request))
    return WorkspaceRead.model_validate(workspace)


@router.get("", response_model=list[WorkspaceSummary])
def list_workspaces(
    user: User = Depends(require_auth),
    service: WorkspaceService = Depends(get_workspace_service),
) -> list[WorkspaceSummary]:
    return service.list_user_workspaces(user)


@router.get("/{workspace_id}", response_model=WorkspaceRead)
def get_workspace(
    workspace_id: uuid.UUID,
    user: User = Depends(require_auth),
    service: WorkspaceService = Depends(get_workspace_service),
) -> WorkspaceRead:
    workspace = service.get_workspace(workspace_id, user)
    if workspace is None:
        raise HTTPException(status_code=404, detail="Workspace not found")
    return WorkspaceRead.model_validate(workspace)


@router.get("/{workspace_id}/stats", response_model=WorkspaceStats)
def workspace_stats(
    workspace_id: uuid.UUID,
    user: User = Depends(require_auth),
    service: WorkspaceService = Depends(get_workspace_service),
) -> WorkspaceStats:
    return service.workspace_stats(workspace_id, user)


@router.get("/{workspace_id}/members", response_model=list[MemberRead])
def list_members(
    workspace_id: uuid.UUID,
    user: User = Depends(require_auth),
    service: WorkspaceService = Depends(get_workspace_service),
) -> list[MemberRead]:
    return [MemberRead.model_validate(m) for m in service.list_members(workspace_id, user)]


@router.post("/{workspace_id}/members", response_model=MemberRead, status_code=201)
def add_member(
    workspace_id: uuid.UUID,
    body: WorkspaceMemberBody,
    request: Request,
    user: User = Depends(require_auth),
    service: WorkspaceService = Depends(get_workspace_service),
) -> MemberRead:
    """Add an existing user to the workspace (owners only)."""
    data = AddWorkspaceMemberInput(workspace_id=workspace_id, user_id=body.user_id, role=body.role)
    member = service.add_member(data, user, ip_address=client_ip(request))
    return MemberRead.model_validate(member)


@router.patch("/{workspace_id}/members/{user_id}", response_model=MemberResult)
def update_member_role(
    workspace_id: uuid.UUID,
    user_id: uuid.UUID,
    body: WorkspaceRoleBody,
    request: Request,
    user: User = Depends(require_auth),
    service: WorkspaceService = Depends(get_workspace_service),
) -> MemberResult:
    data = UpdateWorkspaceMemberRoleInput(workspace_id=workspace_id, user_id=user_id, role=body.role)
    return service.update_member_role(data, user, ip_address=client_ip(request))


@router.delete("/{workspace_id}/members/{user_id}", status_code=204)
def remove_member(
    workspace_id: uuid.UUID,
    user_id: uuid.UUID,
    request: Request,
    user: User = Depends(require_auth),
    service: WorkspaceService = Depends(get_workspace_service),
) -> None:
    """Remove a member and their project memberships in this workspace (owners only)."""
    service.remove_member(workspace_id, user_id, user, ip_address=client_ip(request))


@router.get("/{workspace_id}/projects", response_model=list[ProjectRead])
def list_projects(
    workspace_id: uuid.UUID,
    user: User = Depends(require_auth),
    service: ProjectService = Depends(get_project_service),
) -> list[ProjectRead]:
    return [ProjectRead.model_validate(p) for p in service.list_workspace_projects(workspace_id, user)]
