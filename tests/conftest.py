# Shared pytest fixtures: in-memory database, users and an API client
from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.shift_tool.config import settings
from src.shift_tool.database import get_db
from src.shift_tool.main import app
from src.shift_tool.models import Base, Organization, User
from src.shift_tool.models.user import UserRole
from src.shift_tool.services.shift_import import IMPORT_SESSIONS


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def db(session_factory) -> Session:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def isolated_import_state(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "IMPORT_ERROR_DIR", str(tmp_path / "import_errors"))
    IMPORT_SESSIONS.clear()
    yield
    IMPORT_SESSIONS.clear()


@pytest.fixture()
def org(db: Session) -> Organization:
    organization = Organization(name="Downtown Clinic Group")
    db.add(organization)
    db.commit()
    return organization


@pytest.fixture()
def make_user(db: Session, org: Organization):
    def _make(email: str, role: UserRole = UserRole.STAFF, organization: Organization | None = None,
              is_active: bool = True) -> User:
        user = User(
            organization_id=(organization or org).id,
            email=email,
            name=email.split("@")[0],
            role=role,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        return user
    return _make


@pytest.fixture()
def manager(make_user) -> User:
    return make_user("manager@example.com", UserRole.MANAGER)


@pytest.fixture()
def staff_users(make_user) -> list[User]:
    return [make_user(f"nurse{i}@example.com") for i in range(1, 4)]


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def make_row():
    return build_shift_row


def build_shift_row(email: str, date: str = "2024-03-15", start: str = "09:00", end: str = "17:00",
                    role: str = "Nurse", department: str = "Downtown Clinic") -> dict:
    return {
        "email": email,
        "date": date,
        "start_time": start,
        "end_time": end,
        "role": role,
        "department": department,
    }
