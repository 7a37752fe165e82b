"""
Unit tests for partpulse/database.py

Tests: get_db commits on success, maps a lost connection to StoreUnavailable
       after rolling back, re-raises anything else after rolling back.
"""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import text
from sqlalchemy.exc import InterfaceError, OperationalError

from partpulse import database
from partpulse.errors import NotFound, StoreUnavailable


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class _SessionContext:
    def __init__(self, session):
        self.session = session

    async def __aenter__(self):
        return self.session

    async def __aexit__(self, *exc):
        return False


@pytest.fixture
def session(monkeypatch) -> AsyncMock:
    session = AsyncMock()
    monkeypatch.setattr(database, "AsyncSessionLocal", lambda: _SessionContext(session))
    return session


# ---------------------------------------------------------------------------
# get_db
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_get_db_commits_on_success(session):
    dependency = database.get_db()
    assert await dependency.__anext__() is session

    with pytest.raises(StopAsyncIteration):
        await dependency.__anext__()
    session.commit.assert_awaited_once()
    session.rollback.assert_not_awaited()


@pytest.mark.asyncio
async def test_get_db_maps_lost_connection(session):
    session.execute.side_effect = OperationalError(
        "SELECT 1", {}, Exception("connection refused")
    )
    dependency = database.get_db()
    db = await dependency.__anext__()

    with pytest.raises(OperationalError) as caught:
        await db.execute(text("SELECT 1"))
    with pytest.raises(StoreUnavailable) as raised:
        await dependency.athrow(caught.value)

    assert raised.value.status_code == 503
    assert raised.value.__cause__ is caught.value
    session.rollback.assert_awaited_once()
    session.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_get_db_maps_interface_error(session):
    dependency = database.get_db()
    await dependency.__anext__()

    with pytest.raises(StoreUnavailable):
        await dependency.athrow(InterfaceError("SELECT 1", {}, Exception("closed")))
    session.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_get_db_reraises_domain_errors(session):
    dependency = database.get_db()
    await dependency.__anext__()

    with pytest.raises(NotFound):
        await dependency.athrow(NotFound("Request 'x' not found"))
    session.rollback.assert_awaited_once()
    session.commit.assert_not_awaited()
