"""Typed failures raised by services and mapped to HTTP responses in collabhub.api.errors."""

from __future__ import annotations

from typing import Any


class CollabError(Exception):
    """Base class for domain failures. Carries a user-facing message and diagnostic context."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context


class AuthenticationError(CollabError):
    """Missing/invalid/expired token, unknown user, bad credentials or banned user."""

    def __init__(self, message: str = "Not authenticated", *, reason: str = "invalid_token", **context: Any) -> None:
        super().__init__(message, reason=reason, **context)
        self.reason = reason


class TokenExpiredError(AuthenticationError):
    """Token signature is valid but the token is past its exp claim."""

    def __init__(self, message: str = "Token expired", **context: Any) -> None:
        super().__init__(message, reason="token_expired", **context)


class TokenInvalidError(AuthenticationError):
    """Token is malformed, tampered, signed with another key or of the wrong type."""

    def __init__(self, message: str = "Invalid token", **context: Any) -> None:
        super().__init__(message, reason="invalid_token", **context)


class ForbiddenError(CollabError):
    """Authenticated but the role held at this level is insufficient."""

    def __init__(self, message: str, *, required_role: str | None = None, **context: Any) -> None:
        super().__init__(message, required_role=required_role, **context)
        self.required_role = required_role


class UserInputError(CollabError):
    """Domain-rule violation in the request (duplicate, missing field, sole owner/lead, ...)."""
