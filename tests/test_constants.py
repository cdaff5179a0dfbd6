"""
Centralized test credentials and secrets.

All test-only credentials are loaded from environment variables when available,
with clearly non-production placeholders as fallbacks.
"""

from __future__ import annotations

import os

# Passwords: long enough for registration validation
TEST_PASSWORD = os.environ.get("TEST_PASSWORD") or "correct-horse-1"
TEST_PASSWORD_WRONG = os.environ.get("TEST_PASSWORD_WRONG") or "wrong-horse-2"
TEST_PASSWORD_NEW = os.environ.get("TEST_PASSWORD_NEW") or "battery-staple-3"

# Signing keys: access and refresh must differ
TEST_JWT_SECRET = os.environ.get("TEST_JWT_SECRET") or "test-access-secret"
TEST_JWT_REFRESH_SECRET = os.environ.get("TEST_JWT_REFRESH_SECRET") or "test-refresh-secret"
TEST_TOKEN_HASH_SECRET = os.environ.get("TEST_TOKEN_HASH_SECRET") or "test-hash-secret"

TEST_DATABASE_URL = "sqlite+pysqlite:///:memory:"
