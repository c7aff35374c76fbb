"""Pytest configuration and fixtures."""

import os

TEST_JWT_SECRET = "test-secret-key-with-enough-length-for-hs256"

# Settings are cached on first import, so the environment is fixed up front
os.environ["ENV_MODE"] = "development"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"
os.environ["AUTH_JWT_SECRET"] = TEST_JWT_SECRET
os.environ["AUTH_JWT_AUDIENCE"] = ""
os.environ["AUTH_JWT_ISSUER"] = ""

from decimal import Decimal
from typing import Optional

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from traktir.database import Base, get_db
from traktir.main import app, get_reply_scheduler
from traktir.models import MenuItem, User
from traktir.services.llm import get_llm_service, reset_llm_service
from traktir.services.llm.base import BaseLLMService, CompletionResult


class FakeLLMService(BaseLLMService):
    """Scriptable language model that records every prompt."""

    def __init__(self, reply: Optional[str] = "Рекомендую борщ.", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls = []

    @property
    def provider_name(self) -> str:
        return "fake"

    async def complete(self, system_prompt: str, user_prompt: str) -> CompletionResult:
        self.calls.append((system_prompt, user_prompt))
        if self.error is not None:
            raise self.error
        if self.reply is None:
            return CompletionResult(success=False, model="fake", error_message="provider down")
        return CompletionResult(success=True, text=self.reply, model="fake")

    async def health_check(self) -> bool:
        return True


class ScheduleRecorder:
    """Stands in for the Celery scheduler; keeps the queued jobs."""

    def __init__(self):
        self.jobs = []

    def __call__(self, user_id: str, message: str, bot_type: str) -> None:
        self.jobs.append((user_id, message, bot_type))


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Create a test database engine backed by a temporary file."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    return async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_maker):
    """Create a test database session."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def fake_llm() -> FakeLLMService:
    return FakeLLMService()


@pytest.fixture
def scheduler() -> ScheduleRecorder:
    return ScheduleRecorder()


@pytest_asyncio.fixture
async def client(session_maker, scheduler, fake_llm):
    """Create a test client with database, scheduler and LLM overrides."""
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_reply_scheduler] = lambda: scheduler
    app.dependency_overrides[get_llm_service] = lambda: fake_llm

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()
    reset_llm_service()


def make_token(sub: str, name: Optional[str] = None, **claims) -> str:
    payload = {"sub": sub, **claims}
    if name is not None:
        payload["name"] = name
    return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")


@pytest.fixture
def auth_headers() -> dict:
    """Get authentication headers for the default test user."""
    return {"Authorization": f"Bearer {make_token('user-1', name='Иван')}"}


@pytest.fixture
def other_auth_headers() -> dict:
    return {"Authorization": f"Bearer {make_token('user-2', name='Мария')}"}


@pytest_asyncio.fixture
async def test_user(db_session) -> User:
    """Create a test user."""
    user = User(id="user-1", name="Иван", email="ivan@example.com")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def menu_items(db_session) -> dict:
    """Create a few menu items."""
    borscht = MenuItem(name="Борщ", description="Суп", price=Decimal("8.99"), category="Супы")
    pelmeni = MenuItem(name="Пельмени", description="С мясом", price=Decimal("12.99"), category="Основные блюда")
    medovik = MenuItem(name="Медовик", description="Торт", price=Decimal("6.99"), category="Десерты")
    db_session.add_all([borscht, pelmeni, medovik])
    await db_session.commit()
    return {"borscht": borscht, "pelmeni": pelmeni, "medovik": medovik}
