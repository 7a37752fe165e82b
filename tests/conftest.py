import os
import uuid

# Tokens in tests are signed with a shared secret instead of the RS256 key pair
os.environ.setdefault("JWT_ALGORITHM", "HS256")
os.environ.setdefault("JWT_SECRET", "partpulse-test-secret")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import partpulse.models  # noqa: F401
from partpulse.database import Base, get_db
from partpulse.main import app
from partpulse.services.auth_service import create_access_token


@pytest_asyncio.fixture()
async def session_factory():
    """Fresh in-memory database per test; every session shares one connection."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(session_factory) -> AsyncSession:
    session = session_factory()
    try:
        yield session
    finally:
        await session.close()


@pytest_asyncio.fixture()
async def client(session_factory):
    async def _get_test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_test_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


def make_actor(role: str, building_id: str = "B1", user_id=None) -> dict:
    """Claims dict as get_current_user returns it."""
    return {
        "user_id": str(user_id or uuid.uuid4()),
        "role": role,
        "email": f"{role}@partpulse.io",
        "building_id": building_id,
    }


def headers_for(actor: dict) -> dict:
    token = create_access_token(
        user_id=actor["user_id"],
        role=actor["role"],
        email=actor["email"],
        building_id=actor.get("building_id"),
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def actors() -> dict:
    """One actor per workflow role."""
    return {
        role: make_actor(role)
        for role in (
            "technician",
            "coordinator",
            "building_tech",
            "maintenance_org",
            "tech_director",
            "god_admin",
        )
    }


@pytest.fixture
def auth():
    """auth(actor) -> Authorization headers for that actor."""
    return headers_for
