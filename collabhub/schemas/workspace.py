"""Workspace schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from collabhub.roles import WorkspaceRole


def _strip_name(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Name is required")
    return value


class CreateWorkspaceInput(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5000)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return _strip_name(v)


class WorkspaceMemberBody(BaseModel):
    """Request body for adding a member; the workspace comes from the path."""

    user_id: uuid.UUID
    role: WorkspaceRole = WorkspaceRole.MEMBER


class AddWorkspaceMemberInput(WorkspaceMemberBody):
    workspace_id: uuid.UUID


class WorkspaceRoleBody(BaseModel):
    role: WorkspaceRole


class UpdateWorkspaceMemberRoleInput(BaseModel):
    workspace_id: uuid.UUID
    user_id: uuid.UUID
    role: WorkspaceRole


class WorkspaceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: str | None
    created_by: uuid.UUID
    created_at: datetime
    updated_at: datetime


class WorkspaceSummary(WorkspaceRead):
    """Workspace as listed for one of its members."""

    role: WorkspaceRole
    member_count: int
    project_count: int


class WorkspaceStats(BaseModel):
    member_count: int
    project_count: int
    task_count: int
    completed_task_count: int
