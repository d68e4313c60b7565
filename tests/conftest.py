"""Pytest configuration and shared fixtures"""
import os

# Settings are read at import time, so the environment must be ready first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("DATABASE_URL_SYNC", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("QUEUE_ENABLED", "false")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.pop("SMTP_HOST", None)

from typing import AsyncGenerator, Dict, List, Optional, Sequence
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from sitewatch.core.database import Base
from sitewatch.db.enums import UserRole
from sitewatch.db.models import User, Website
from sitewatch.services.audit_engine import EngineResult

# Test database URL (use in-memory SQLite for unit tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeEngine:
    """Audit engine double returning fixed scores"""

    def __init__(self, scores: Optional[Dict[str, float]] = None,
                 critical_issues: Sequence[str] = (), error: Optional[Exception] = None):
        self.scores = scores
        self.critical_issues = list(critical_issues)
        self.error = error
        self.calls: List[str] = []

    async def run(self, url: str, categories: Sequence[str]) -> EngineResult:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        scores = self.scores or {category: 80.0 for category in categories}
        return EngineResult(
            scores={category: scores[category] for category in categories if category in scores},
            issues={category: [] for category in categories},
            critical_issues=list(self.critical_issues),
        )


class RecordingEmailSender:
    """Email sender double that remembers what it was asked to send"""

    enabled = True

    def __init__(self):
        self.sent = []

    async def send(self, to_email: str, subject: str, html_body: str) -> bool:
        self.sent.append((to_email, subject))
        return True


@pytest.fixture
async def test_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create test database session"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(engine, expire_on_commit=False)

    async with async_session() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def email_sender():
    return RecordingEmailSender()


@pytest.fixture
def make_user(test_db_session):
    """Factory persisting a user"""
    async def _make(role: str = UserRole.USER.value, email: Optional[str] = None, name: str = "Test Client"):
        user = User(
            email=email or f"{uuid4().hex[:8]}@example.com",
            name=name,
            role=role,
            unread_notification_count=0,
        )
        test_db_session.add(user)
        await test_db_session.commit()
        await test_db_session.refresh(user)
        return user
    return _make


@pytest.fixture
def make_website(test_db_session):
    """Factory persisting a website for a user"""
    async def _make(user: User, url: Optional[str] = None, name: str = "Example"):
        website = Website(
            user_id=user.id,
            name=name,
            url=url or f"https://{uuid4().hex[:8]}.example.com",
            monitoring_enabled=False,
        )
        test_db_session.add(website)
        await test_db_session.commit()
        await test_db_session.refresh(website)
        return website
    return _make


@pytest.fixture
def engine_factory():
    """Build engines with custom scores or failures"""
    return FakeEngine
