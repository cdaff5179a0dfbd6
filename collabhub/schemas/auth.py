"""Authentication and account schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from collabhub.roles import GlobalStatus

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_BYTES = 72


def _normalize_email(value: str) -> str:
    value = value.strip().lower()
    local, sep, domain = value.partition("@")
    if not sep or not local or "." not in domain:
        raise ValueError("Invalid email address")
    return value


def _check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
    return value


class RegisterInput(BaseModel):
    """Schema for account registration."""

    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        return _check_password_bytes(v)


class LoginInput(BaseModel):
    """Schema for login credentials."""

    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()


class ChangePasswordInput(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=PASSWORD_MIN_LENGTH)

    @field_validator("new_password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        return _check_password_bytes(v)


class RefreshRequest(BaseModel):
    """Refresh token in the body; falls back to the refresh_token cookie when omitted."""

    refresh_token: str | None = None


class LogoutRequest(BaseModel):
    refresh_token: str | None = None


class RevokeAllSessionsRequest(BaseModel):
    """Pass the current refresh token to keep this device signed in."""

    current_refresh_token: str | None = None


class RevokeAllSessionsResponse(BaseModel):
    revoked: int


class UserPublic(BaseModel):
    """Public identity fields of a user."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str


class UserRead(BaseModel):
    """Schema for reading user info (response)."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    global_status: GlobalStatus
    last_login: datetime | None = None
    created_at: datetime


class TokenPairResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class LoginResponse(TokenPairResponse):
    user: UserRead


class DeviceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    ip_address: str | None
    user_agent: str | None
    device_info: dict | None
    is_revoked: bool
    login_time: datetime
    last_active: datetime


class AuditLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    timestamp: datetime
    level: str
    user_id: uuid.UUID | None
    ip_address: str | None
    action: str
    details: dict | None
    message: str
