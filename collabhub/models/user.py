"""User model."""

from __future__ import annotations

import uuid
from datetime import datetime

import bcrypt as _bcrypt
from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from collabhub.config import get_settings
from collabhub.db.session import Base
from collabhub.models._types import enum_column, utcnow
from collabhub.roles import GlobalStatus

BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    """bcrypt only uses the first 72 bytes; reject longer passwords instead of truncating."""
    pw_bytes = password.encode("utf-8")
    if len(pw_bytes) > BCRYPT_MAX_BYTES:
        raise ValueError("Password too long for bcrypt (max 72 bytes)")
    return pw_bytes


class User(Base):
    """Application identity. Never physically deleted; banned via global_status."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    global_status: Mapped[GlobalStatus] = mapped_column(
        enum_column(GlobalStatus, "global_status"),
        default=GlobalStatus.ACTIVE,
        nullable=False,
        index=True,
    )
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    @property
    def is_banned(self) -> bool:
        return self.global_status == GlobalStatus.BANNED

    @property
    def is_admin(self) -> bool:
        return self.global_status == GlobalStatus.ADMIN

    def set_password(self, password: str) -> None:
        """Hash and store password using bcrypt."""
        salt = _bcrypt.gensalt(rounds=get_settings().bcrypt_rounds)
        self.password_hash = _bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")

    def verify_password(self, password: str) -> bool:
        """Verify password against stored hash."""
        try:
            pw_bytes = _password_bytes(password)
        except ValueError:
            return False
        return _bcrypt.checkpw(pw_bytes, self.password_hash.encode("utf-8"))
