from collections.abc import AsyncGenerator
from unittest.mock import patch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import JSON, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from sitelog.common.security import create_access_token
from sitelog.core.memory.service import TemplateWriter
from sitelog.db.base import Base
from sitelog.db.models import *  # noqa: F401,F403 - ensure all models loaded

# In-memory SQLite per test - JSONB remapped to JSON
TEST_DATABASE_URL = "sqlite+aiosqlite://"

TEST_USER_ID = "user-supervisor-1"
OTHER_USER_ID = "user-supervisor-2"


# Make JSONB render as JSON for SQLite
@event.listens_for(Base.metadata, "before_create")
def _remap_jsonb(target, connection, **kw):
    if connection.dialect.name == "sqlite":
        for table in target.tables.values():
            for column in table.columns:
                if isinstance(column.type, JSONB):
                    column.type = JSON()


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session
        await session.rollback()


class _SharedSession:
    """Session factory stand-in that hands out the test session and never closes it."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def __call__(self):
        return self

    async def __aenter__(self) -> AsyncSession:
        return self.session

    async def __aexit__(self, *exc) -> bool:
        return False


@pytest.fixture
def template_writer(db_session) -> TemplateWriter:
    return TemplateWriter(_SharedSession(db_session), delay=0.2)


@pytest.fixture
async def client(db_session, template_writer):
    from sitelog.api.deps import get_db, get_template_writer
    from sitelog.main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_template_writer] = lambda: template_writer

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def _token(user_id: str, **claims) -> str:
    payload = {"sub": user_id, "email": f"{user_id}@test.com", "email_verified": True}
    payload.update(claims)
    return create_access_token(payload)


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {_token(TEST_USER_ID, name='Dana Ruiz')}"}


@pytest.fixture
def other_headers():
    return {"Authorization": f"Bearer {_token(OTHER_USER_ID)}"}


@pytest.fixture
def unverified_headers():
    return {"Authorization": f"Bearer {_token('user-unverified', email_verified=False)}"}


@pytest.fixture(autouse=True)
def mock_celery_tasks():
    """Mock Celery task.delay() calls to prevent actual task execution in tests."""
    with patch("sitelog.tasks.memory_tasks.sync_master_item.delay") as delay:
        yield delay
