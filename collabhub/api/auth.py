"""Authentication API routes."""

from __future__ import annotations

from fastapi import APIRouter, Cookie, Depends, HTTPException, Request, Response, status

from collabhub.api.deps import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    client_ip,
    get_auth_service,
    require_auth,
)
from collabhub.config import get_settings
from collabhub.models.user import User
from collabhub.schemas.auth import (
    ChangePasswordInput,
    DeviceRead,
    LoginInput,
    LoginResponse,
    LogoutRequest,
    RefreshRequest,
    RegisterInput,
    RevokeAllSessionsRequest,
    RevokeAllSessionsResponse,
    TokenPairResponse,
    UserRead,
)
from collabhub.services.auth import AuthService

router = APIRouter()

REFRESH_COOKIE_PATH = "/api/auth"


def _set_auth_cookies(response: Response, access_token: str, refresh_token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        key=ACCESS_COOKIE,
        value=access_token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
        max_age=settings.access_token_expire_minutes * 60,
        path="/",
    )
    response.set_cookie(
        key=REFRESH_COOKIE,
        value=refresh_token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
        max_age=settings.refresh_token_expire_days * 24 * 60 * 60,
        path=REFRESH_COOKIE_PATH,
    )


def _clear_auth_cookies(response: Response) -> None:
    response.delete_cookie(key=ACCESS_COOKIE, path="/")
    response.delete_cookie(key=REFRESH_COOKIE, path=REFRESH_COOKIE_PATH)


@router.post("/register", response_model=UserRead, status_code=201)
def register(
    body: RegisterInput,
    request: Request,
    auth: AuthService = Depends(get_auth_service),
) -> UserRead:
    """Create an account. The new user still has to log in."""
    user = auth.register(body, ip_address=client_ip(request))
    return UserRead.model_validate(user)


@router.post("/login", response_model=LoginResponse)
def login(
    body: LoginInput,
    request: Request,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    """Authenticate and return an access/refresh pair.

    Also sets httponly cookies for browser sessions.
    """
    result = auth.login(body, ip_address=client_ip(request), user_agent=request.headers.get("user-agent"))
    _set_auth_cookies(response, result.access_token, result.refresh_token)
    return LoginResponse(
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        user=UserRead.model_validate(result.user),
    )


@router.post("/refresh", response_model=TokenPairResponse)
def refresh(
    request: Request,
    response: Response,
    body: RefreshRequest | None = None,
    refresh_token: str | None = Cookie(None),
    auth: AuthService = Depends(get_auth_service),
) -> TokenPairResponse:
    """Rotate the refresh token. The presented token cannot be used again."""
    token = (body.refresh_token if body else None) or refresh_token
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    pair = auth.refresh(token, ip_address=client_ip(request))
    _set_auth_cookies(response, pair.access_token, pair.refresh_token)
    return TokenPairResponse(access_token=pair.access_token, refresh_token=pair.refresh_token)


@router.post("/logout")
def logout(
    request: Request,
    response: Response,
    body: LogoutRequest | None = None,
    refresh_token: str | None = Cookie(None),
    auth: AuthService = Depends(get_auth_service),
) -> dict:
    """Revoke this device's session and clear the cookies. Always succeeds."""
    token = (body.refresh_token if body else None) or refresh_token
    revoked = auth.logout(token, ip_address=client_ip(request))
    _clear_auth_cookies(response)
    return {"detail": "Logged out", "revoked": revoked}


@router.post("/revoke-all-sessions", response_model=RevokeAllSessionsResponse)
def revoke_all_sessions(
    request: Request,
    body: RevokeAllSessionsRequest | None = None,
    keep_current: bool = True,
    refresh_token: str | None = Cookie(None),
    user: User = Depends(require_auth),
    auth: AuthService = Depends(get_auth_service),
) -> RevokeAllSessionsResponse:
    """Log out every device. With keep_current (default) the calling device stays signed in."""
    current = None
    if keep_current:
        current = (body.current_refresh_token if body else None) or refresh_token
    count = auth.revoke_all_sessions(user, current_refresh_token=current, ip_address=client_ip(request))
    return RevokeAllSessionsResponse(revoked=count)


@router.get("/me", response_model=UserRead)
def me(current_user: User = Depends(require_auth)) -> UserRead:
    """Return the currently authenticated user's information."""
    return UserRead.model_validate(current_user)


@router.get("/devices", response_model=list[DeviceRead])
def devices(
    user: User = Depends(require_auth),
    auth: AuthService = Depends(get_auth_service),
) -> list[DeviceRead]:
    return [DeviceRead.model_validate(d) for d in auth.list_devices(user)]


@router.post("/change-password")
def change_password(
    body: ChangePasswordInput,
    request: Request,
    response: Response,
    user: User = Depends(require_auth),
    auth: AuthService = Depends(get_auth_service),
) -> dict:
    """Change the password. Every session is revoked, including this one."""
    revoked = auth.change_password(user, body, ip_address=client_ip(request))
    _clear_auth_cookies(response)
    return {"detail": "Password changed", "revoked": revoked}
