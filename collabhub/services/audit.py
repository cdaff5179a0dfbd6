"""Audit trail: durable audit_logs rows plus a matching application log line."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime

from sqlalchemy.orm import Session

from collabhub.models.audit_log import AUDIT_LEVELS, AuditLog

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "security": logging.WARNING,
}

_MESSAGES = {
    "LOGIN_SUCCESS": "User logged in",
    "LOGIN_FAILURE": "Login attempt failed",
    "LOGOUT": "User logged out",
    "REFRESH_TOKEN": "Session refreshed",
    "REVOKE_ALL_SESSIONS": "Sessions revoked",
    "PASSWORD_CHANGED": "Password changed",
    "USER_REGISTERED": "User registered",
    "USER_BANNED": "User banned",
    "USER_UNBANNED": "User unbanned",
    "WORKSPACE_CREATED": "Workspace created",
    "MEMBER_ADDED": "Workspace member added",
    "MEMBER_REMOVED": "Workspace member removed",
    "ROLE_UPDATED": "Workspace member role updated",
    "PROJECT_CREATED": "Project created",
    "PROJECT_MEMBER_ADDED": "Project member added",
    "PROJECT_ROLE_UPDATED": "Project member role updated",
    "PROJECT_DELETED": "Project deleted",
    "TASK_CREATED": "Task created",
    "TASK_UPDATED": "Task updated",
    "TASK_DELETED": "Task deleted",
}


class AuditLogger:
    """Adds audit rows to the caller's session; they commit with the surrounding unit of work."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def record(
        self,
        action: str,
        *,
        user_id: uuid.UUID | None = None,
        ip_address: str | None = None,
        details: dict | None = None,
        level: str = "info",
    ) -> AuditLog:
        if level not in AUDIT_LEVELS:
            raise ValueError(f"unknown audit level: {level}")
        details = _jsonable(details or {})
        entry = AuditLog(
            level=level,
            user_id=user_id,
            ip_address=ip_address,
            action=action,
            details=details,
            message=_MESSAGES.get(action, action),
        )
        self.db.add(entry)
        logger.log(
            _LOG_LEVELS[level],
            "audit: action=%s user_id=%s ip=%s details=%s",
            action,
            user_id,
            ip_address,
            details,
        )
        return entry

    def query(
        self,
        *,
        level: str | None = None,
        user_id: uuid.UUID | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int = 50,
    ) -> list[AuditLog]:
        q = self.db.query(AuditLog)
        if level:
            q = q.filter(AuditLog.level == level)
        if user_id:
            q = q.filter(AuditLog.user_id == user_id)
        if start:
            q = q.filter(AuditLog.timestamp >= start)
        if end:
            q = q.filter(AuditLog.timestamp <= end)
        return q.order_by(AuditLog.timestamp.desc()).limit(limit).all()


def _jsonable(details: dict) -> dict:
    """UUIDs and enums in details are stored as plain strings."""
    out = {}
    for key, value in details.items():
        if isinstance(value, uuid.UUID):
            out[key] = str(value)
        elif hasattr(value, "value") and isinstance(getattr(value, "value"), str):
            out[key] = value.value
        elif isinstance(value, (list, tuple, set)):
            out[key] = [str(v) for v in value]
        else:
            out[key] = value
    return out
