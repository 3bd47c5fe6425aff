"""Shared pytest fixtures for workpost tests."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest
from click.testing import CliRunner

from workpost.core import DB_FILENAME, WORKPOST_DIR_NAME, WorkpostDB, write_config
from tests._db_factory import World, make_db, seed_world


@pytest.fixture
def db(tmp_path: Path) -> Generator[WorkpostDB, None, None]:
    """Fresh WorkpostDB for each test (English notifications)."""
    d = make_db(tmp_path)
    yield d
    d.close()


@pytest.fixture
def world(db: WorkpostDB) -> World:
    """Users, a team and channels seeded into ``db``. See ``World``."""
    return seed_world(db)


@pytest.fixture
def workpost_project(tmp_path: Path) -> Path:
    """A tmp directory set up as a workpost project (.workpost/ with config + db).

    Returns the project root (parent of .workpost/).
    """
    workpost_dir = tmp_path / WORKPOST_DIR_NAME
    workpost_dir.mkdir()
    write_config(workpost_dir, {"version": 1, "locale": "en"})

    d = WorkpostDB(workpost_dir / DB_FILENAME, locale="en")
    d.initialize()
    d.close()
    return tmp_path


@pytest.fixture
def cli_runner() -> CliRunner:
    """Click CLI test runner."""
    return CliRunner()
