"""
Shared pytest fixtures.

Every test gets a fresh in-memory SQLite database seeded with two
organizations, so cross-org behaviour can be checked everywhere.
"""

import os
from datetime import date
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure test environment before the app reads its settings
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["DEBUG"] = "true"

from onboarding.core.auth import CallerContext, create_access_token  # noqa: E402
from onboarding.core.database import get_db, init_db  # noqa: E402
from onboarding.main import app  # noqa: E402
from onboarding.models import Employee, Organization, Profile, ProfileRole  # noqa: E402
from tests.factories import (  # noqa: E402
    ADMIN_A,
    ADMIN_B,
    EMPLOYEE_A,
    EMPLOYEE_B,
    EMPLOYEE_NO_MANAGER,
    HR_HIGH,
    HR_INACTIVE,
    HR_LOW,
    MANAGER_A,
    ORG_A,
    ORG_B,
)


# ============================================================================
# DATABASE FIXTURES
# ============================================================================


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine) -> Generator[Session, None, None]:
    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seeded(db: Session) -> Session:
    """Two orgs with profiles and employees"""
    db.add_all([
        Organization(id=ORG_A, name="Acme"),
        Organization(id=ORG_B, name="Globex"),
    ])
    db.add_all([
        Profile(id=ADMIN_A, org_id=ORG_A, email="admin@acme.test", role=ProfileRole.ADMIN, active=True),
        # Inserted out of id order on purpose
        Profile(id=HR_HIGH, org_id=ORG_A, email="hr2@acme.test", role=ProfileRole.HR, active=True),
        Profile(id=HR_LOW, org_id=ORG_A, email="hr1@acme.test", role=ProfileRole.HR, active=True),
        Profile(id=HR_INACTIVE, org_id=ORG_A, email="hr0@acme.test", role=ProfileRole.HR, active=False),
        Profile(id=MANAGER_A, org_id=ORG_A, email="mgr@acme.test", role=ProfileRole.MANAGER, active=True),
        Profile(id=ADMIN_B, org_id=ORG_B, email="admin@globex.test", role=ProfileRole.ADMIN, active=True),
    ])
    db.add_all([
        Employee(id=EMPLOYEE_A, org_id=ORG_A, full_name="Ada Lovelace", email="ada@acme.test",
                 manager_profile_id=MANAGER_A, start_date=date(2025, 3, 3)),
        Employee(id=EMPLOYEE_NO_MANAGER, org_id=ORG_A, full_name="Alan Turing", email="alan@acme.test"),
        Employee(id=EMPLOYEE_B, org_id=ORG_B, full_name="Grace Hopper", email="grace@globex.test"),
    ])
    db.commit()
    return db


@pytest.fixture
def caller() -> CallerContext:
    return CallerContext(caller_id=ADMIN_A, org_id=ORG_A, role=ProfileRole.ADMIN)


@pytest.fixture
def other_caller() -> CallerContext:
    return CallerContext(caller_id=ADMIN_B, org_id=ORG_B, role=ProfileRole.ADMIN)


# ============================================================================
# HTTP FIXTURES
# ============================================================================


@pytest.fixture
def client(seeded: Session) -> Generator[TestClient, None, None]:
    def override_get_db():
        yield seeded

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    return {"Authorization": f"Bearer {create_access_token(ADMIN_A)}"}


@pytest.fixture
def other_org_headers() -> dict:
    return {"Authorization": f"Bearer {create_access_token(ADMIN_B)}"}
