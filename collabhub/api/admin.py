"""Admin API: account bans and the audit trail."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from collabhub.api.deps import client_ip, get_auth_service, get_db, require_admin
from collabhub.models.user import User
from collabhub.schemas.auth import AuditLogRead, UserRead
from collabhub.services.audit import AuditLogger
from collabhub.services.auth import AuthService

router = APIRouter()


@router.post("/users/{user_id}/ban", response_model=UserRead)
def ban_user(
    user_id: uuid.UUID,
    request: Request,
    admin: User = Depends(require_admin),
    auth: AuthService = Depends(get_auth_service),
) -> UserRead:
    """Ban a user and revoke all of their sessions."""
    return UserRead.model_validate(auth.ban_user(admin, user_id, ip_address=client_ip(request)))


@router.post("/users/{user_id}/unban", response_model=UserRead)
def unban_user(
    user_id: uuid.UUID,
    request: Request,
    admin: User = Depends(require_admin),
    auth: AuthService = Depends(get_auth_service),
) -> UserRead:
    return UserRead.model_validate(auth.unban_user(admin, user_id, ip_address=client_ip(request)))


@router.get("/audit-logs", response_model=list[AuditLogRead])
def audit_logs(
    level: str | None = None,
    user_id: uuid.UUID | None = None,
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> list[AuditLogRead]:
    """Most recent audit entries, newest first."""
    entries = AuditLogger(db).query(level=level, user_id=user_id, limit=limit)
    return [AuditLogRead.model_validate(e) for e in entries]
