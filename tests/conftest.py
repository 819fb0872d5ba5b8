# tests/conftest.py

import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "testing"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["BCRYPT_ROUNDS"] = "4"

from contextlib import asynccontextmanager

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from iam.adapters.configuration.config import settings
from iam.adapters.inbound.api.deps import get_audit_session_factory
from iam.adapters.outbound.persistence.database import get_db
from iam.adapters.outbound.persistence.models import Base
from iam.adapters.outbound.persistence.seeds.permissions import run_permissions_seed
from iam.main import app
from tests.factories import login, make_user


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    @asynccontextmanager
    async def audit_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_audit_session_factory] = lambda: audit_session

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def seeded(db):
    """Database holding the system modules and the administrator."""
    await run_permissions_seed(db)
    return db


@pytest_asyncio.fixture
async def admin_headers(client, seeded):
    return await login(client, settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD)


@pytest_asyncio.fixture
async def user_headers(client, db):
    """A user holding no permission at all."""
    await make_user(db, "plainuser")
    return await login(client, "plainuser@acme.io")
