"""Shared fixtures for the scheduling tests.

Provides:
- a fixed clock (Monday 2026-10-19 08:00 UTC)
- in-memory fakes for the Google collaborators and the notifier
- an in-memory SQLite database for repository and API tests
- an httpx client bound to the FastAPI app
"""

import os
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import AsyncGenerator, List, Optional
from uuid import uuid4

os.environ.setdefault("ENCRYPTION_KEY", "0Gm1ni4bb5Vg2dTtq4b1Xb8t7eOkK1fQ3N9m0yJj0nY=")
os.environ.setdefault("JWT_SECRET", "test-secret")

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from portal.core.database import Base, get_db
from portal.integrations.google_calendar.models import (
    BusyInterval,
    CalendarCredential,
    CreatedEvent,
)
from portal.models import Meeting, User, UserRole
from portal.services.db_service import DBService


# ─────────────────────────────────────────────────────────────────────────────
# Clock
# ─────────────────────────────────────────────────────────────────────────────

NOW = datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc)  # Monday
FRIDAY_LATE = datetime(2026, 10, 23, 17, 45, tzinfo=timezone.utc)

MEET_LINK = "https://meet.google.com/abc-defg-hij"


def at(day: int, hour: int, minute: int = 0) -> datetime:
    """A UTC timestamp in October 2026"""
    return datetime(2026, 10, day, hour, minute, tzinfo=timezone.utc)


# ─────────────────────────────────────────────────────────────────────────────
# Fakes
# ─────────────────────────────────────────────────────────────────────────────


class FakeOAuth:
    """Stands in for GoogleCalendarOAuth.refresh_access_token"""

    def __init__(self, access_token: str = "fresh-access", expires_in: int = 3600, error: Exception = None):
        self.access_token = access_token
        self.expires_in = expires_in
        self.error = error
        self.refresh_calls: List[str] = []

    async def refresh_access_token(self, refresh_token: str):
        self.refresh_calls.append(refresh_token)
        if self.error:
            raise self.error
        return self.access_token, self.expires_in


class FakeCalendar:
    """Stands in for GoogleCalendarClient"""

    def __init__(
        self,
        busy: Optional[List[BusyInterval]] = None,
        busy_error: Exception = None,
        create_error: Exception = None,
        meet_link: Optional[str] = MEET_LINK,
    ):
        self.busy = busy or []
        self.busy_error = busy_error
        self.create_error = create_error
        self.meet_link = meet_link
        self.busy_calls = []
        self.create_calls = []

    async def get_busy_intervals(self, credential, access_token, range_start, range_end):
        self.busy_calls.append(
            SimpleNamespace(credential=credential, access_token=access_token, start=range_start, end=range_end)
        )
        if self.busy_error:
            raise self.busy_error
        return list(self.busy)

    async def create_event(self, credential, access_token, event):
        self.create_calls.append(SimpleNamespace(credential=credential, access_token=access_token, event=event))
        if self.create_error:
            raise self.create_error
        return CreatedEvent(event_id="evt-123", meet_link=self.meet_link, raw={})


class FakeNotifier:
    def __init__(self, error: Exception = None):
        self.error = error
        self.sent = []

    async def send_meeting_invitation(self, recipient_email, recipient_name, details):
        self.sent.append(SimpleNamespace(email=recipient_email, name=recipient_name, details=details))
        if self.error:
            raise self.error
        return {"id": "email-1"}


class FakeTokenStore:
    def __init__(self, save_error: Exception = None):
        self.saved = []
        self.save_error = save_error

    async def save_calendar_tokens(self, credential, access_token, token_expiry):
        if self.save_error:
            raise self.save_error
        self.saved.append(SimpleNamespace(access_token=access_token, token_expiry=token_expiry))
        return replace(
            credential,
            access_token=access_token,
            token_expiry=token_expiry,
            version=credential.version + 1,
        )


class FakeSchedulingDB(FakeTokenStore):
    """In-memory DBService replacement that counts every call"""

    def __init__(self, requester=None, owner=None, credential: Optional[CalendarCredential] = None):
        super().__init__()
        self.users = {}
        for user in (requester, owner):
            if user is not None:
                self.users[str(user.id)] = user
        self.owner = owner
        self.credential = credential
        self.meetings: List[Meeting] = []
        self.create_error: Exception = None
        self.calls: List[str] = []

    async def get_user(self, user_id):
        self.calls.append("get_user")
        return self.users.get(str(user_id))

    async def get_calendar_owner(self):
        self.calls.append("get_calendar_owner")
        return self.owner

    def credential_from_user(self, user):
        self.calls.append("credential_from_user")
        return self.credential

    async def save_calendar_tokens(self, credential, access_token, token_expiry):
        self.calls.append("save_calendar_tokens")
        return await super().save_calendar_tokens(credential, access_token, token_expiry)

    async def create_meeting(self, data: dict) -> Meeting:
        self.calls.append("create_meeting")
        if self.create_error:
            raise self.create_error
        meeting = Meeting(**data)
        meeting.id = uuid4()
        self.meetings.append(meeting)
        return meeting


def make_person(role: UserRole, email: str, name: str) -> SimpleNamespace:
    return SimpleNamespace(id=uuid4(), email=email, name=name, role=role)


def make_credential(owner_id, expiry: Optional[datetime], refresh_token: Optional[str] = "stored-refresh"):
    return CalendarCredential(
        owner_id=str(owner_id),
        access_token="stored-access",
        refresh_token=refresh_token,
        token_expiry=expiry,
        calendar_id="admin@example.com",
        version=3,
    )


@pytest.fixture
def client_person():
    return make_person(UserRole.CLIENT, "client@example.com", "Casey Client")


@pytest.fixture
def admin_person():
    return make_person(UserRole.ADMIN, "admin@example.com", "Alex Admin")


@pytest.fixture
def valid_credential(admin_person):
    return make_credential(admin_person.id, NOW + timedelta(hours=1))


@pytest.fixture
def expired_credential(admin_person):
    return make_credential(admin_person.id, NOW - timedelta(minutes=5))


# ─────────────────────────────────────────────────────────────────────────────
# Database Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh in-memory SQLite schema per test"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def db_service(db_session) -> DBService:
    return DBService(db_session)


@pytest_asyncio.fixture
async def stored_client(db_service) -> User:
    return await db_service.create_user(
        {"email": "Client@Example.com", "name": "Casey Client", "role": UserRole.CLIENT}
    )


@pytest_asyncio.fixture
async def stored_staff(db_service) -> User:
    return await db_service.create_user(
        {"email": "staff@example.com", "name": "Sam Staff", "role": UserRole.TBB_STAFF}
    )


@pytest_asyncio.fixture
async def stored_admin(db_service) -> User:
    admin = await db_service.create_user(
        {"email": "admin@example.com", "name": "Alex Admin", "role": UserRole.ADMIN}
    )
    return await db_service.connect_calendar(
        admin,
        access_token="admin-access",
        refresh_token="admin-refresh",
        token_expiry=NOW + timedelta(hours=1),
        calendar_id="admin@example.com",
    )


# ─────────────────────────────────────────────────────────────────────────────
# API Fixtures
# ─────────────────────────────────────────────────────────────────────────────


def session_token(user_id) -> str:
    return jwt.encode({"userId": str(user_id)}, os.environ["JWT_SECRET"], algorithm="HS256")


def auth_headers(user_id) -> dict:
    return {"Authorization": f"Bearer {session_token(user_id)}"}


@pytest_asyncio.fixture
async def api_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with the database swapped for SQLite"""
    from portal.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
