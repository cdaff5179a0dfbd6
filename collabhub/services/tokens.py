"""Token lifecycle: signed access/refresh JWTs and the salted refresh-token hash.

Access tokens carry identity claims for per-request authentication and live 15
minutes. Refresh tokens carry only the user id, a ``type`` discriminator and a
random ``jti``; they live 7 days and are signed with a different secret so that
leaking one key does not let an attacker mint the other kind of token.

Validation here is purely cryptographic. Whether the user still exists, is not
banned, or still owns a live session is decided by the callers
(``AuthService.authenticate`` and ``SessionStore``).
"""

from __future__ import annotations

import hashlib
import hmac
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import ExpiredSignatureError, JWTError, jwt

from collabhub.config import Settings, get_settings
from collabhub.errors import TokenExpiredError, TokenInvalidError
from collabhub.models.user import User
from collabhub.roles import GlobalStatus

REFRESH_TOKEN_TYPE = "refresh"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class AccessClaims:
    user_id: uuid.UUID
    email: str
    global_status: GlobalStatus
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class RefreshClaims:
    user_id: uuid.UUID
    token_type: str | None
    token_id: str | None
    issued_at: datetime
    expires_at: datetime


def _from_ts(value: int | float) -> datetime:
    return datetime.fromtimestamp(value, tz=UTC)


class TokenManager:
    """Mints and validates the two bearer tokens of a session."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        if not self.settings.jwt_secret or not self.settings.jwt_refresh_secret:
            raise RuntimeError("JWT_SECRET and JWT_REFRESH_SECRET must both be configured")
        if self.settings.jwt_secret == self.settings.jwt_refresh_secret:
            raise RuntimeError("JWT_SECRET and JWT_REFRESH_SECRET must differ")

    @property
    def access_ttl(self) -> timedelta:
        return timedelta(minutes=self.settings.access_token_expire_minutes)

    @property
    def refresh_ttl(self) -> timedelta:
        return timedelta(days=self.settings.refresh_token_expire_days)

    def issue(self, user: User, now: datetime | None = None) -> TokenPair:
        """Create a fresh access/refresh pair for ``user``."""
        now = now or datetime.now(UTC)
        iat = int(now.timestamp())
        access_payload = {
            "userId": str(user.id),
            "email": user.email,
            "globalStatus": GlobalStatus(user.global_status).value,
            "iat": iat,
            "exp": int((now + self.access_ttl).timestamp()),
        }
        refresh_payload = {
            "userId": str(user.id),
            "type": REFRESH_TOKEN_TYPE,
            "jti": uuid.uuid4().hex,
            "iat": iat,
            "exp": int((now + self.refresh_ttl).timestamp()),
        }
        alg = self.settings.jwt_algorithm
        return TokenPair(
            access_token=jwt.encode(access_payload, self.settings.jwt_secret, algorithm=alg),
            refresh_token=jwt.encode(refresh_payload, self.settings.jwt_refresh_secret, algorithm=alg),
        )

    def validate_access(self, token: str) -> AccessClaims:
        """Decode an access token. Raises TokenExpiredError or TokenInvalidError."""
        payload = self._decode(token, self.settings.jwt_secret, kind="access")
        try:
            return AccessClaims(
                user_id=uuid.UUID(payload["userId"]),
                email=payload["email"],
                global_status=GlobalStatus(payload["globalStatus"]),
                issued_at=_from_ts(payload["iat"]),
                expires_at=_from_ts(payload["exp"]),
            )
        except (KeyError, TypeError, ValueError):
            raise TokenInvalidError("Invalid access token") from None

    def validate_refresh(self, token: str) -> RefreshClaims:
        """Decode a refresh token. Raises TokenExpiredError or TokenInvalidError."""
        payload = self._decode(token, self.settings.jwt_refresh_secret, kind="refresh")
        token_type = payload.get("type")
        if token_type is not None and token_type != REFRESH_TOKEN_TYPE:
            raise TokenInvalidError("Invalid refresh token")
        try:
            return RefreshClaims(
                user_id=uuid.UUID(payload["userId"]),
                token_type=token_type,
                token_id=payload.get("jti"),
                issued_at=_from_ts(payload["iat"]),
                expires_at=_from_ts(payload["exp"]),
            )
        except (KeyError, TypeError, ValueError):
            raise TokenInvalidError("Invalid refresh token") from None

    def hash_refresh_token(self, token: str) -> str:
        """HMAC-SHA256 of the raw token; the only form ever persisted."""
        key = self.settings.token_hash_secret.encode("utf-8")
        return hmac.new(key, token.encode("utf-8"), hashlib.sha256).hexdigest()

    def _decode(self, token: str, secret: str, *, kind: str) -> dict:
        if not token:
            raise TokenInvalidError(f"Invalid {kind} token")
        try:
            return jwt.decode(token, secret, algorithms=[self.settings.jwt_algorithm])
        except ExpiredSignatureError:
            raise TokenExpiredError(f"{kind.capitalize()} token expired") from None
        except JWTError:
            raise TokenInvalidError(f"Invalid {kind} token") from None
