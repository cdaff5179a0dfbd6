"""
Pytest configuration and fixtures.

Every test gets a fresh in-memory SQLite database built from the ORM metadata,
so no PostgreSQL is needed.
"""

from __future__ import annotations

import os
import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from tests.test_constants import (
    TEST_DATABASE_URL,
    TEST_JWT_REFRESH_SECRET,
    TEST_JWT_SECRET,
    TEST_PASSWORD,
    TEST_TOKEN_HASH_SECRET,
)

# Must be set before collabhub.config is imported; don't inherit from .env
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["JWT_SECRET"] = TEST_JWT_SECRET
os.environ["JWT_REFRESH_SECRET"] = TEST_JWT_REFRESH_SECRET
os.environ["TOKEN_HASH_SECRET"] = TEST_TOKEN_HASH_SECRET
os.environ["BCRYPT_ROUNDS"] = "4"  # fast hashing in tests


@pytest.fixture
def engine():
    import collabhub.models  # noqa: F401  registers tables
    from collabhub.db.session import Base

    eng = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine) -> Session:
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def make_user(db: Session):
    """Factory: persist a user with TEST_PASSWORD and the given global status."""
    from collabhub.models.user import User
    from collabhub.roles import GlobalStatus

    def _make(email: str | None = None, status: GlobalStatus = GlobalStatus.ACTIVE) -> User:
        user = User(email=email or f"user-{uuid.uuid4().hex[:8]}@example.com", global_status=status)
        user.set_password(TEST_PASSWORD)
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def tokens():
    from collabhub.config import get_settings
    from collabhub.services.tokens import TokenManager

    return TokenManager(get_settings())


@pytest.fixture
def event_bus():
    from collabhub.services.events import EventBus

    return EventBus()


@pytest.fixture
def auth_service(db: Session, tokens):
    from collabhub.services.auth import AuthService

    return AuthService(db, tokens)


@pytest.fixture
def workspace_service(db: Session):
    from collabhub.services.workspace_service import WorkspaceService

    return WorkspaceService(db)


@pytest.fixture
def project_service(db: Session):
    from collabhub.services.project_service import ProjectService

    return ProjectService(db)


@pytest.fixture
def task_service(db: Session, event_bus):
    from collabhub.services.task_service import TaskService

    return TaskService(db, events=event_bus)


@pytest.fixture
def workspace_factory(workspace_service):
    """Factory: workspace owned by ``owner`` with optional extra members {user: role}."""
    from collabhub.schemas.workspace import AddWorkspaceMemberInput, CreateWorkspaceInput

    def _make(owner, members: dict | None = None, name: str = "W"):
        workspace = workspace_service.create_workspace(CreateWorkspaceInput(name=name), owner)
        for user, role in (members or {}).items():
            workspace_service.add_member(
                AddWorkspaceMemberInput(workspace_id=workspace.id, user_id=user.id, role=role), owner
            )
        return workspace

    return _make


@pytest.fixture
def project_factory(project_service):
    from collabhub.schemas.project import CreateProjectInput

    def _make(workspace, lead, name: str = "P"):
        return project_service.create_project(CreateProjectInput(workspace_id=workspace.id, name=name), lead)

    return _make


@pytest.fixture
def client() -> TestClient:
    """FastAPI test client."""
    from collabhub.main import app

    return TestClient(app)


@pytest.fixture
def client_with_db(db: Session) -> TestClient:
    """TestClient with get_db overridden to use the test db session."""
    from collabhub.db.session import get_db
    from collabhub.main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    c = TestClient(app)
    yield c
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def bearer(tokens):
    """Authorization header for ``user`` with a freshly issued access token."""

    def _headers(user) -> dict:
        return {"Authorization": f"Bearer {tokens.issue(user).access_token}"}

    return _headers
