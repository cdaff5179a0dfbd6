"""Task schemas.

UpdateTaskInput distinguishes "not provided" from "set to null" through
``model_fields_set``; only provided fields are written.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from collabhub.roles import TaskStatus


def _dedupe(ids: list[uuid.UUID] | None) -> list[uuid.UUID] | None:
    if ids is None:
        return None
    return list(dict.fromkeys(ids))


class CreateTaskInput(BaseModel):
    project_id: uuid.UUID
    title: str = Field(..., min_length=1, max_length=500)
    description: str | None = None
    status: TaskStatus = TaskStatus.TODO
    due_date: datetime | None = None
    assignee_ids: list[uuid.UUID] = Field(default_factory=list)

    @field_validator("assignee_ids")
    @classmethod
    def dedupe_assignees(cls, v):
        return _dedupe(v)


class TaskUpdateBody(BaseModel):
    """PATCH body; the task id comes from the path."""

    title: str | None = Field(None, min_length=1, max_length=500)
    description: str | None = None
    status: TaskStatus | None = None
    due_date: datetime | None = None
    assignee_ids: list[uuid.UUID] | None = None

    @field_validator("assignee_ids")
    @classmethod
    def dedupe_assignees(cls, v):
        return _dedupe(v)

    @field_validator("title", "status")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("may not be null")
        return v


class UpdateTaskInput(TaskUpdateBody):
    task_id: uuid.UUID


class TaskRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    description: str | None
    status: TaskStatus
    project_id: uuid.UUID
    created_by: uuid.UUID
    due_date: datetime | None
    created_at: datetime
    updated_at: datetime
    assignee_ids: list[uuid.UUID]
