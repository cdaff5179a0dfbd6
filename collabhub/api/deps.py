"""Shared FastAPI dependencies for API routes."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Cookie, Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from collabhub.config import get_settings
from collabhub.db.session import get_db  # re-export
from collabhub.errors import AuthenticationError
from collabhub.models.user import User
from collabhub.services.auth import AuthService
from collabhub.services.events import get_event_bus
from collabhub.services.notifications import NotificationService
from collabhub.services.project_service import ProjectService
from collabhub.services.task_service import TaskService
from collabhub.services.tokens import TokenManager
from collabhub.services.workspace_service import WorkspaceService

__all__ = [
    "ACCESS_COOKIE",
    "REFRESH_COOKIE",
    "client_ip",
    "get_auth_service",
    "get_current_user",
    "get_db",
    "get_notification_service",
    "get_project_service",
    "get_task_service",
    "get_token_manager",
    "get_workspace_service",
    "require_admin",
    "require_auth",
]

# Cookie names for browser sessions
ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"


@lru_cache(maxsize=1)
def get_token_manager() -> TokenManager:
    return TokenManager(get_settings())


def get_auth_service(
    db: Session = Depends(get_db),
    tokens: TokenManager = Depends(get_token_manager),
) -> AuthService:
    return AuthService(db, tokens)


def get_workspace_service(db: Session = Depends(get_db)) -> WorkspaceService:
    return WorkspaceService(db)


def get_project_service(db: Session = Depends(get_db)) -> ProjectService:
    return ProjectService(db)


def get_task_service(db: Session = Depends(get_db)) -> TaskService:
    return TaskService(db, events=get_event_bus())


def get_notification_service(db: Session = Depends(get_db)) -> NotificationService:
    return NotificationService(db)


def client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


def get_current_user(
    request: Request,
    auth: AuthService = Depends(get_auth_service),
    authorization: str | None = Header(None),
    access_token: str | None = Cookie(None),
) -> User | None:
    """Return the authenticated user or None.

    Checks (in order):
    1. Authorization: Bearer <token> header
    2. access_token cookie

    The user is reloaded on every request, so a banned user's unexpired
    token stops working immediately.
    """
    token: str | None = None

    if authorization and authorization.startswith("Bearer "):
        token = authorization[len("Bearer ") :]

    if token is None and access_token:
        token = access_token

    if token is None:
        return None

    try:
        return auth.authenticate(token)
    except AuthenticationError as exc:
        request.state.auth_failure = exc.reason
        return None


def require_auth(
    request: Request,
    user: User | None = Depends(get_current_user),
) -> User:
    """Dependency that requires authentication. Returns 401 otherwise."""
    if user is None:
        reason = getattr(request.state, "auth_failure", None)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired" if reason == "token_expired" else "Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_admin(user: User = Depends(require_auth)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin privileges required")
    return user
