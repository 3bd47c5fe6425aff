"""Fixtures for HTTP API tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

import workpost.api as api_module
from workpost.api import create_app
from workpost.core import WorkpostDB
from tests._db_factory import World, make_db, seed_world


@pytest.fixture
def api_db(tmp_path: Path) -> Generator[WorkpostDB, None, None]:
    d = make_db(tmp_path, check_same_thread=False)
    yield d
    d.close()


@pytest.fixture
def api_world(api_db: WorkpostDB) -> World:
    return seed_world(api_db)


@pytest.fixture
async def client(api_db: WorkpostDB, api_world: World) -> AsyncGenerator[AsyncClient, None]:
    """Client with no session header; tests pass ``X-User-Id`` per request."""
    api_module._db = api_db
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    api_module._db = None
