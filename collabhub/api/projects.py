"""Project API routes."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Request

from collabhub.api.deps import client_ip, get_project_service, get_task_service, require_auth
from collabhub.models.user import User
from collabhub.schemas.membership import MemberRead, MemberResult
from collabhub.schemas.project import (
    AddProjectMemberInput,
    CreateProjectInput,
    ProjectMemberBody,
    ProjectRead,
    ProjectRoleBody,
    UpdateProjectMemberRoleInput,
)
from collabhub.schemas.task import TaskRead
from collabhub.services.project_service import ProjectService
from collabhub.services.task_service import TaskService

router = APIRouter()


@router.post("", response_model=ProjectRead, status_code=201)
def create_project(
    body: CreateProjectInput,
    request: Request,
    user: User = Depends(require_auth),
    service: ProjectService = Depends(get_project_service),
) -> ProjectRead:
    """Create a project in a workspace; the caller becomes its lead."""
    project = service.create_project(body, user, ip_address=client_ip(request))
    return ProjectRead.model_validate(project)


@router.get("/{project_id}", response_model=ProjectRead)
def get_project(
    project_id: uuid.UUID,
    user: User = Depends(require_auth),
    service: ProjectService = Depends(get_project_service),
) -> ProjectRead:
    project = service.get_project(project_id, user)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return ProjectRead.model_validate(project)


@router.delete("/{project_id}", status_code=204)
def delete_project(
    project_id: uuid.UUID,
    request: Request,
    user: User = Depends(require_auth),
    service: ProjectService = Depends(get_project_service),
) -> None:
    service.delete_project(project_id, user, ip_address=client_ip(request))


@router.get("/{project_id}/members", response_model=list[MemberRead])
def list_members(
    project_id: uuid.UUID,
    user: User = Depends(require_auth),
    service: ProjectService = Depends(get_project_service),
) -> list[MemberRead]:
    return [MemberRead.model_validate(m) for m in service.list_members(project_id, user)]


@router.post("/{project_id}/members", response_model=MemberRead, status_code=201)
def add_member(
    project_id: uuid.UUID,
    body: ProjectMemberBody,
    request: Request,
    user: User = Depends(require_auth),
    service: ProjectService = Depends(get_project_service),
) -> MemberRead:
    data = AddProjectMemberInput(project_id=project_id, user_id=body.user_id, role=body.role)
    return MemberRead.model_validate(service.add_member(data, user, ip_address=client_ip(request)))


@router.patch("/{project_id}/members/{user_id}", response_model=MemberResult)
def update_member_role(
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    body: ProjectRoleBody,
    request: Request,
    user: User = Depends(require_auth),
    service: ProjectService = Depends(get_project_service),
) -> MemberResult:
    data = UpdateProjectMemberRoleInput(project_id=project_id, user_id=user_id, role=body.role)
    return service.update_member_role(data, user, ip_address=client_ip(request))


@router.get("/{project_id}/tasks", response_model=list[TaskRead])
def list_tasks(
    project_id: uuid.UUID,
    user: User = Depends(require_auth),
    service: TaskService = Depends(get_task_service),
) -> list[TaskRead]:
    return [TaskRead.model_validate(t) for t in service.list_project_tasks(project_id, user)]
