"""Fixtures for API tests backed by a file SQLite database"""
import asyncio
from typing import Optional
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from sitewatch.api import dependencies
from sitewatch.core.auth import create_user_token
from sitewatch.core.database import Base, get_db
from sitewatch.db.enums import UserRole
from sitewatch.db.models import User
from sitewatch.main import app
from sitewatch.services.audit_service import AuditService
from sitewatch.services.monitoring_service import MonitoringService
from sitewatch.services.notification_service import NotificationService
from sitewatch.services.scheduled_audit_service import ScheduledAuditService
from sitewatch.services.webhook_service import WebhookService


@pytest.fixture
def api_engine(tmp_path):
    """Database engine shared by the app under test and the seeding helpers"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'api.db'}", poolclass=NullPool)

    async def _create():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(_create())
    yield engine
    asyncio.run(engine.dispose())


@pytest.fixture
def session_factory(api_engine):
    return async_sessionmaker(api_engine, expire_on_commit=False)


@pytest.fixture
def run_db(session_factory):
    """Run ``fn(session)`` outside the app, for seeding and inspection"""
    def _run(fn):
        async def _wrapper():
            async with session_factory() as session:
                return await fn(session)
        return asyncio.run(_wrapper())
    return _run


@pytest.fixture
def seed_user(run_db):
    """Persist a user and return its id"""
    def _seed(role: str = UserRole.USER.value, email: Optional[str] = None) -> UUID:
        async def _create(db):
            user = User(
                email=email or f"{uuid4().hex[:8]}@example.com",
                name="Test Client",
                role=role,
                unread_notification_count=0,
            )
            db.add(user)
            await db.commit()
            return user.id
        return run_db(_create)
    return _seed


@pytest.fixture
def auth_headers():
    def _headers(user_id: UUID, role: str = UserRole.USER.value) -> dict:
        return {"Authorization": f"Bearer {create_user_token(user_id, role)}"}
    return _headers


@pytest.fixture
def user_id(seed_user):
    return seed_user()


@pytest.fixture
def headers(auth_headers, user_id):
    return auth_headers(user_id)


@pytest.fixture
def admin_headers(seed_user, auth_headers):
    return auth_headers(seed_user(UserRole.ADMIN.value), UserRole.ADMIN.value)


@pytest.fixture
def client(session_factory, fake_engine, email_sender):
    """Test client with the database and audit engine swapped for test doubles"""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    def audit_service():
        return AuditService(engine=fake_engine)

    def notification_service():
        return NotificationService(email_sender=email_sender, webhook_service=WebhookService())

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[dependencies.get_audit_service] = audit_service
    app.dependency_overrides[dependencies.get_notification_service] = notification_service
    app.dependency_overrides[dependencies.get_scheduled_audit_service] = (
        lambda: ScheduledAuditService(audit_service(), notification_service())
    )
    app.dependency_overrides[dependencies.get_monitoring_service] = (
        lambda: MonitoringService(audit_service(), notification_service())
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def create_website(client, headers):
    """Register a website through the API and return its id"""
    def _create(url: str = "https://example.com", request_headers: Optional[dict] = None) -> str:
        response = client.post("/api/v1/websites", json={"url": url}, headers=request_headers or headers)
        assert response.status_code == 201
        return response.json()["id"]
    return _create
