"""
Test configuration and fixtures.

Provides:
- Database session on in-memory SQLite (tables wiped after each test)
- Team/type/field factories for service tests
- HTTPX AsyncClient with the CSRF header
"""
import os
import uuid
from typing import AsyncGenerator, Generator

# Point the app at a throwaway database before anything imports settings
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["ENV"] = "test"

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.orm import Session

from app.main import app
from app.core.deps import get_db, CSRF_HEADER, CSRF_HEADER_VALUE
from app.db.base import Base
from app.db.enums import EntityKind, FieldKind
from app.db.models import CustomFieldDefinition, TeamType
from app.db.session import engine, SessionLocal
from app.services import custom_field_service, team_type_service


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="session", autouse=True)
def create_schema() -> Generator[None, None, None]:
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Database session for one test.

    App code commits freely; every table is emptied afterwards so tests
    never see each other's rows.
    """
    session = SessionLocal()
    yield session
    session.rollback()
    session.close()
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


# =============================================================================
# Domain Fixtures
# =============================================================================

@pytest.fixture
def team_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def other_team_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def contact_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def make_type(db: Session, team_id: uuid.UUID):
    """Factory for team types (defaults to a contact type in team_id)."""

    def _make(
        name: str = "Investor",
        entity_kind: EntityKind = EntityKind.CONTACT,
        team: uuid.UUID | None = None,
        **kwargs,
    ) -> TeamType:
        return team_type_service.create_type(
            db, team or team_id, entity_kind, name=name, **kwargs
        )

    return _make


@pytest.fixture
def make_field(db: Session):
    """Factory for field definitions on an existing type."""

    def _make(
        team_type: TeamType,
        name: str = "Net Worth",
        field_kind: FieldKind = FieldKind.CURRENCY,
        **kwargs,
    ) -> CustomFieldDefinition:
        return custom_field_service.create_field(
            db, team_type.team_id, team_type.id, name=name, field_kind=field_kind, **kwargs
        )

    return _make


@pytest.fixture
def investor_type(make_type) -> TeamType:
    return make_type("Investor", icon="PiggyBank", color="green")


@pytest.fixture
def net_worth_field(make_field, investor_type: TeamType) -> CustomFieldDefinition:
    return make_field(investor_type, "Net Worth", FieldKind.CURRENCY, is_required=True)


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient with the CSRF header set, sharing the test session."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={CSRF_HEADER: CSRF_HEADER_VALUE},
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def bare_client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient without the CSRF header."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
