"""Authentication service: registration, login, token refresh and session revocation.

Access tokens are stateless; every request still goes through ``authenticate``,
which reloads the user so a ban takes effect before the token expires.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from collabhub.db.transaction import unit_of_work
from collabhub.errors import (
    AuthenticationError,
    ForbiddenError,
    TokenExpiredError,
    TokenInvalidError,
    UserInputError,
)
from collabhub.models._types import utcnow
from collabhub.models.user import User
from collabhub.models.user_device import UserDevice
from collabhub.roles import GlobalStatus
from collabhub.schemas.auth import ChangePasswordInput, LoginInput, RegisterInput
from collabhub.services.audit import AuditLogger
from collabhub.services.session_store import SessionStore
from collabhub.services.tokens import TokenManager, TokenPair

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
INVALID_REFRESH_TOKEN = "Invalid refresh token"


@dataclass(frozen=True)
class LoginResult:
    access_token: str
    refresh_token: str
    user: User
    session_id: uuid.UUID


class AuthService:
    def __init__(
        self,
        db: Session,
        tokens: TokenManager,
        sessions: SessionStore | None = None,
        audit: AuditLogger | None = None,
    ) -> None:
        self.db = db
        self.tokens = tokens
        self.sessions = sessions or SessionStore(db)
        self.audit = audit or AuditLogger(db)

    def register(self, data: RegisterInput, ip_address: str | None = None) -> User:
        """Create an ACTIVE user with a bcrypt-hashed password."""
        if self._find_by_email(data.email) is not None:
            raise UserInputError("Email already registered")
        try:
            with unit_of_work(self.db):
                user = User(email=data.email, global_status=GlobalStatus.ACTIVE)
                user.set_password(data.password)
                self.db.add(user)
                self.db.flush()
                self.audit.record("USER_REGISTERED", user_id=user.id, ip_address=ip_address)
        except IntegrityError:
            raise UserInputError("Email already registered") from None
        return user

    def validate_credentials(self, email: str, password: str) -> User | None:
        """Return the user for a correct email/password pair, or None. BANNED users never validate."""
        user = self._find_by_email(email)
        if user is None or user.is_banned:
            return None
        if not user.verify_password(password):
            return None
        return user

    def login(
        self,
        data: LoginInput,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> LoginResult:
        """Validate credentials, open a device session and issue a token pair."""
        user = self._find_by_email(data.email)
        reason = None
        if user is None:
            reason = "unknown_user"
        elif not user.verify_password(data.password):
            reason = "invalid_password"
        elif user.is_banned:
            reason = "banned"
        if reason is not None:
            with unit_of_work(self.db):
                self.audit.record(
                    "LOGIN_FAILURE",
                    user_id=user.id if user else None,
                    ip_address=ip_address,
                    details={"email": data.email, "reason": reason},
                    level="security",
                )
            message = "Account is banned" if reason == "banned" else INVALID_CREDENTIALS
            raise AuthenticationError(message, reason=reason)

        pair = self.tokens.issue(user)
        with unit_of_work(self.db):
            user.last_login = utcnow()
            session_id = self.sessions.create(
                user.id,
                self.tokens.hash_refresh_token(pair.refresh_token),
                ip_address=ip_address,
                user_agent=user_agent,
                device_info={"user_agent": user_agent} if user_agent else {},
            )
            self.audit.record(
                "LOGIN_SUCCESS",
                user_id=user.id,
                ip_address=ip_address,
                details={"session_id": session_id},
            )
        logger.info("login_succeeded: user_id=%s session_id=%s", user.id, session_id)
        return LoginResult(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            user=user,
            session_id=session_id,
        )

    def refresh(self, refresh_token: str, ip_address: str | None = None) -> TokenPair:
        """Exchange a live refresh token for a new pair, rotating the session's stored hash.

        The presented token is single-use: once rotated its hash no longer
        matches any session. When two refreshes race on one session only the
        first rotation succeeds and the other fails as an invalid token.
        """
        try:
            claims = self.tokens.validate_refresh(refresh_token)
        except TokenExpiredError:
            raise
        except TokenInvalidError:
            raise AuthenticationError(INVALID_REFRESH_TOKEN, reason="invalid_refresh_token") from None

        old_hash = self.tokens.hash_refresh_token(refresh_token)
        found = self.sessions.lookup_active_by_hash(old_hash)
        if found is None:
            raise AuthenticationError(INVALID_REFRESH_TOKEN, reason="invalid_refresh_token")
        device, user = found
        if device.user_id != claims.user_id:
            raise AuthenticationError(INVALID_REFRESH_TOKEN, reason="invalid_refresh_token")

        pair = self.tokens.issue(user)
        with unit_of_work(self.db):
            rotated = self.sessions.rotate(
                device.id,
                self.tokens.hash_refresh_token(pair.refresh_token),
                expected_hash=old_hash,
            )
            if not rotated:
                raise AuthenticationError(INVALID_REFRESH_TOKEN, reason="invalid_refresh_token")
            self.audit.record(
                "REFRESH_TOKEN",
                user_id=user.id,
                ip_address=ip_address,
                details={"session_id": device.id},
            )
        return pair

    def logout(self, refresh_token: str | None, ip_address: str | None = None) -> bool:
        """Revoke the session holding this refresh token. Idempotent; never fails on unknown tokens."""
        if not refresh_token:
            return False
        token_hash = self.tokens.hash_refresh_token(refresh_token)
        found = self.sessions.lookup_active_by_hash(token_hash)
        with unit_of_work(self.db):
            revoked = self.sessions.revoke(token_hash)
            if revoked:
                self.audit.record(
                    "LOGOUT",
                    user_id=found[0].user_id if found else None,
                    ip_address=ip_address,
                )
        return revoked

    def revoke_all_sessions(
        self,
        user: User,
        current_refresh_token: str | None = None,
        ip_address: str | None = None,
    ) -> int:
        """Revoke every session of ``user``, keeping the one for ``current_refresh_token`` if given."""
        exclude_hash = (
            self.tokens.hash_refresh_token(current_refresh_token) if current_refresh_token else None
        )
        with unit_of_work(self.db):
            count = self.sessions.revoke_all_except(user.id, exclude_hash)
            self.audit.record(
                "REVOKE_ALL_SESSIONS",
                user_id=user.id,
                ip_address=ip_address,
                details={"revoked": count, "kept_current": exclude_hash is not None},
                level="security",
            )
        return count

    def authenticate(self, access_token: str) -> User:
        """Resolve a bearer access token to a current, non-banned user."""
        claims = self.tokens.validate_access(access_token)
        user = self.db.get(User, claims.user_id)
        if user is None:
            raise AuthenticationError("User not found", reason="unknown_user")
        if user.is_banned:
            raise AuthenticationError("Account is banned", reason="banned")
        return user

    def change_password(
        self,
        user: User,
        data: ChangePasswordInput,
        ip_address: str | None = None,
    ) -> int:
        """Replace the password and revoke all of the user's sessions. Returns the revoked count."""
        if not user.verify_password(data.current_password):
            raise UserInputError("Current password is incorrect")
        with unit_of_work(self.db):
            user.set_password(data.new_password)
            count = self.sessions.revoke_all_except(user.id)
            self.audit.record(
                "PASSWORD_CHANGED",
                user_id=user.id,
                ip_address=ip_address,
                details={"revoked": count},
                level="security",
            )
        return count

    def ban_user(self, admin: User, user_id: uuid.UUID, ip_address: str | None = None) -> User:
        self._require_admin(admin)
        if admin.id == user_id:
            raise UserInputError("Cannot ban yourself")
        target = self._get_or_fail(user_id)
        with unit_of_work(self.db):
            target.global_status = GlobalStatus.BANNED
            count = self.sessions.revoke_all_except(target.id)
            self.audit.record(
                "USER_BANNED",
                user_id=admin.id,
                ip_address=ip_address,
                details={"target_user_id": target.id, "revoked": count},
                level="security",
            )
        return target

    def unban_user(self, admin: User, user_id: uuid.UUID, ip_address: str | None = None) -> User:
        self._require_admin(admin)
        target = self._get_or_fail(user_id)
        if not target.is_banned:
            raise UserInputError("User is not banned")
        with unit_of_work(self.db):
            target.global_status = GlobalStatus.ACTIVE
            self.audit.record(
                "USER_UNBANNED",
                user_id=admin.id,
                ip_address=ip_address,
                details={"target_user_id": target.id},
                level="security",
            )
        return target

    def get_user(self, user_id: uuid.UUID) -> User | None:
        return self.db.get(User, user_id)

    def list_devices(self, user: User) -> list[UserDevice]:
        return self.sessions.list_devices(user.id)

    def _find_by_email(self, email: str) -> User | None:
        return self.db.query(User).filter(User.email == email.strip().lower()).first()

    def _get_or_fail(self, user_id: uuid.UUID) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise UserInputError("User not found")
        return user

    @staticmethod
    def _require_admin(user: User) -> None:
        if not user.is_admin:
            raise ForbiddenError("Admin privileges required", required_role=GlobalStatus.ADMIN.value)
