"""Project schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from collabhub.roles import ProjectRole
from collabhub.schemas.workspace import _strip_name


class CreateProjectInput(BaseModel):
    workspace_id: uuid.UUID
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5000)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return _strip_name(v)


class ProjectMemberBody(BaseModel):
    user_id: uuid.UUID
    role: ProjectRole = ProjectRole.CONTRIBUTOR


class AddProjectMemberInput(ProjectMemberBody):
    project_id: uuid.UUID


class UpdateProjectMemberRoleInput(BaseModel):
    project_id: uuid.UUID
    user_id: uuid.UUID
    role: ProjectRole


class ProjectRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: str | None
    workspace_id: uuid.UUID
    created_by: uuid.UUID
    created_at: datetime
    updated_at: datetime


class ProjectRoleBody(BaseModel):
    role: ProjectRole
