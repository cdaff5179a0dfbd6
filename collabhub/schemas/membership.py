"""Shared membership result returned by role updates."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator

from collabhub.schemas.auth import UserPublic


class MemberResult(BaseModel):
    """Updated role plus the target's public identity."""

    role: str
    user: UserPublic


class MemberRead(BaseModel):
    """A workspace or project membership row as listed to other members."""

    model_config = ConfigDict(from_attributes=True)

    user_id: uuid.UUID
    role: str
    created_at: datetime
    user: UserPublic

    @field_validator("role", mode="before")
    @classmethod
    def role_value(cls, v):
        return v.value if isinstance(v, enum.Enum) else v
