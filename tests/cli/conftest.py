"""Fixtures for CLI interface tests."""

from __future__ import annotations

import os
from collections.abc import Generator
from pathlib import Path

import pytest
from click.testing import CliRunner

from workpost.cli import cli
from workpost.permissions import SUFFIX_ENV_VAR


@pytest.fixture
def cli_in_project(
    tmp_path: Path, cli_runner: CliRunner, monkeypatch: pytest.MonkeyPatch
) -> Generator[tuple[CliRunner, Path], None, None]:
    """Initialize a workpost project in tmp_path and return (runner, project_root)."""
    monkeypatch.delenv(SUFFIX_ENV_VAR, raising=False)
    monkeypatch.delenv("WORKPOST_LOCALE", raising=False)
    original_cwd = os.getcwd()
    os.chdir(str(tmp_path))
    result = cli_runner.invoke(cli, ["init", "--locale", "en"])
    assert result.exit_code == 0
    yield cli_runner, tmp_path
    os.chdir(original_cwd)
