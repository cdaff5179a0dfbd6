"""Column helpers shared by models."""

from __future__ import annotations

import enum
from datetime import UTC, datetime

from sqlalchemy import Enum


def utcnow() -> datetime:
    return datetime.now(UTC)


def enum_column(enum_cls: type[enum.Enum], name: str) -> Enum:
    """VARCHAR-backed enum (no native PG type) so role sets can evolve via plain migrations."""
    return Enum(enum_cls, name=name, native_enum=False, length=50, validate_strings=True)
