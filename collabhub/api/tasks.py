"""Task API routes."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Request

from collabhub.api.deps import client_ip, get_task_service, require_auth
from collabhub.models.user import User
from collabhub.roles import TaskStatus
from collabhub.schemas.task import CreateTaskInput, TaskRead, TaskUpdateBody, UpdateTaskInput
from collabhub.services.task_service import TaskService

router = APIRouter()


@router.post("", response_model=TaskRead, status_code=201)
def create_task(
    body: CreateTaskInput,
    request: Request,
    user: User = Depends(require_auth),
    service: TaskService = Depends(get_task_service),
) -> TaskRead:
    """Create a task; every assignee is notified."""
    return TaskRead.model_validate(service.create_task(body, user, ip_address=client_ip(request)))


@router.get("/mine", response_model=list[TaskRead])
def my_tasks(
    status: TaskStatus | None = None,
    user: User = Depends(require_auth),
    service: TaskService = Depends(get_task_service),
) -> list[TaskRead]:
    """Tasks assigned to the caller, soonest due date first."""
    return [TaskRead.model_validate(t) for t in service.list_assigned_tasks(user, status)]


@router.get("/{task_id}", response_model=TaskRead)
def get_task(
    task_id: uuid.UUID,
    user: User = Depends(require_auth),
    service: TaskService = Depends(get_task_service),
) -> TaskRead:
    task = service.get_task(task_id, user)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return TaskRead.model_validate(task)


@router.patch("/{task_id}", response_model=TaskRead)
def update_task(
    task_id: uuid.UUID,
    body: TaskUpdateBody,
    request: Request,
    user: User = Depends(require_auth),
    service: TaskService = Depends(get_task_service),
) -> TaskRead:
    """Update only the fields present in the body."""
    data = UpdateTaskInput(task_id=task_id, **body.model_dump(exclude_unset=True))
    return TaskRead.model_validate(service.update_task(data, user, ip_address=client_ip(request)))


@router.delete("/{task_id}", status_code=204)
def delete_task(
    task_id: uuid.UUID,
    request: Request,
    user: User = Depends(require_auth),
    service: TaskService = Depends(get_task_service),
) -> None:
    service.delete_task(task_id, user, ip_address=client_ip(request))
