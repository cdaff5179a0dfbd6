"""Audit logger tests."""

from __future__ import annotations

import logging
import uuid

import pytest

from collabhub.db.transaction import unit_of_work
from collabhub.models.audit_log import AuditLog
from collabhub.roles import WorkspaceRole
from collabhub.services.audit import AuditLogger


@pytest.fixture
def audit(db) -> AuditLogger:
    return AuditLogger(db)


def test_record_joins_the_surrounding_transaction(db, audit):
    with pytest.raises(RuntimeError):
        with unit_of_work(db):
            audit.record("LOGIN_SUCCESS")
            raise RuntimeError("boom")
    assert db.query(AuditLog).count() == 0


def test_record_stores_jsonable_details(db, audit, make_user):
    user = make_user()
    target = uuid.uuid4()
    with unit_of_work(db):
        audit.record(
            "ROLE_UPDATED",
            user_id=user.id,
            ip_address="127.0.0.1",
            details={"member_id": target, "new_role": WorkspaceRole.MEMBER, "ids": [target]},
        )
    entry = db.query(AuditLog).one()
    assert entry.details == {"member_id": str(target), "new_role": "MEMBER", "ids": [str(target)]}
    assert entry.message == "Workspace member role updated"
    assert entry.level == "info"


def test_unknown_level_is_rejected(audit):
    with pytest.raises(ValueError):
        audit.record("LOGIN_SUCCESS", level="debug")


def test_record_emits_log_line(audit, caplog):
    with caplog.at_level(logging.WARNING, logger="collabhub.services.audit"):
        audit.record("LOGIN_FAILURE", level="security", details={"reason": "invalid_password"})
    assert "LOGIN_FAILURE" in caplog.text


def test_query_filters(db, audit, make_user):
    user, other = make_user(), make_user()
    with unit_of_work(db):
        audit.record("LOGIN_SUCCESS", user_id=user.id)
        audit.record("LOGIN_FAILURE", user_id=user.id, level="security")
        audit.record("LOGIN_SUCCESS", user_id=other.id)
    assert len(audit.query()) == 3
    assert [e.action for e in audit.query(level="security")] == ["LOGIN_FAILURE"]
    assert len(audit.query(user_id=user.id)) == 2
    assert len(audit.query(limit=1)) == 1
