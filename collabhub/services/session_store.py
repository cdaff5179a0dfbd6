"""Session/device store: the stateful half of session management.

JWT refresh tokens cannot be invalidated before expiry on their own, so every
login gets a ``user_devices`` row holding the salted hash of its current refresh
token. Refresh rotates that hash, logout revokes the row.

The store never commits; callers wrap calls in ``unit_of_work``.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy.orm import Session

from collabhub.models.user import User
from collabhub.models.user_device import UserDevice
from collabhub.models._types import utcnow
from collabhub.roles import GlobalStatus

logger = logging.getLogger(__name__)


class SessionStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def create(
        self,
        user_id: uuid.UUID,
        refresh_token_hash: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
        device_info: dict | None = None,
    ) -> uuid.UUID:
        """Insert a new active session and return its id."""
        device = UserDevice(
            user_id=user_id,
            refresh_token_hash=refresh_token_hash,
            ip_address=ip_address,
            user_agent=user_agent or "",
            device_info=device_info or {},
            is_revoked=False,
        )
        self.db.add(device)
        self.db.flush()
        logger.debug("session_created: user_id=%s session_id=%s", user_id, device.id)
        return device.id

    def lookup_active_by_hash(self, refresh_token_hash: str) -> tuple[UserDevice, User] | None:
        """Return (session, owner) for a live session, or None.

        Revoked sessions never match. Sessions whose owner is BANNED never match.
        """
        row = (
            self.db.query(UserDevice, User)
            .join(User, User.id == UserDevice.user_id)
            .filter(
                UserDevice.refresh_token_hash == refresh_token_hash,
                UserDevice.is_revoked == False,  # noqa: E712
            )
            .first()
        )
        if row is None:
            return None
        device, user = row
        if user.global_status == GlobalStatus.BANNED:
            return None
        return device, user

    def rotate(
        self,
        session_id: uuid.UUID,
        new_refresh_token_hash: str,
        expected_hash: str | None = None,
    ) -> bool:
        """Overwrite the stored hash and bump last_active in one UPDATE.

        With ``expected_hash`` the UPDATE only matches while the row still holds
        that hash and is not revoked, so of two concurrent rotations of the same
        session exactly one wins; the loser gets False.
        """
        query = self.db.query(UserDevice).filter(UserDevice.id == session_id)
        if expected_hash is not None:
            query = query.filter(
                UserDevice.refresh_token_hash == expected_hash,
                UserDevice.is_revoked == False,  # noqa: E712
            )
        updated = query.update(
            {"refresh_token_hash": new_refresh_token_hash, "last_active": utcnow()}
        )
        return updated > 0

    def revoke(self, refresh_token_hash: str) -> bool:
        """Revoke the session holding this hash. True if a live session was revoked."""
        updated = (
            self.db.query(UserDevice)
            .filter(
                UserDevice.refresh_token_hash == refresh_token_hash,
                UserDevice.is_revoked == False,  # noqa: E712
            )
            .update({"is_revoked": True})
        )
        return updated > 0

    def revoke_all_except(self, user_id: uuid.UUID, exclude_hash: str | None = None) -> int:
        """Revoke every live session of ``user_id`` except the one holding ``exclude_hash``."""
        query = self.db.query(UserDevice).filter(
            UserDevice.user_id == user_id,
            UserDevice.is_revoked == False,  # noqa: E712
        )
        if exclude_hash:
            query = query.filter(UserDevice.refresh_token_hash != exclude_hash)
        return query.update({"is_revoked": True})

    def list_devices(self, user_id: uuid.UUID) -> list[UserDevice]:
        return (
            self.db.query(UserDevice)
            .filter(UserDevice.user_id == user_id)
            .order_by(UserDevice.last_active.desc())
            .all()
        )
