"""Tests for structured logging."""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Generator
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from workpost.logging import setup_logging


@pytest.fixture(autouse=True)
def _clean_handlers() -> Generator[None, None, None]:
    yield
    logger = logging.getLogger("workpost")
    for h in logger.handlers[:]:
        logger.removeHandler(h)
        h.close()


def _last_record(path: Path) -> dict:
    return json.loads(path.read_text(encoding="utf-8").strip().split("\n")[-1])


def _flush(logger: logging.Logger) -> None:
    for handler in logger.handlers:
        handler.flush()


class TestSetupLogging:
    def test_creates_log_file(self, tmp_path: Path) -> None:
        logger = setup_logging(tmp_path)
        logger.info("hello", extra={"event": "test", "post_id": "p1"})
        _flush(logger)
        record = _last_record(tmp_path / "workpost.log")
        assert record["msg"] == "hello"
        assert record["level"] == "INFO"
        assert record["logger"] == "workpost"
        assert record["event"] == "test"
        assert record["post_id"] == "p1"

    def test_child_loggers_land_in_file(self, tmp_path: Path) -> None:
        logger = setup_logging(tmp_path)
        logging.getLogger("workpost.audit").info(
            "created plan", extra={"event": "create", "user_id": "u1", "channel_id": "c1"}
        )
        _flush(logger)
        record = _last_record(tmp_path / "workpost.log")
        assert record["logger"] == "workpost.audit"
        assert record["user_id"] == "u1"
        assert record["channel_id"] == "c1"

    def test_unknown_extras_dropped_and_unicode_kept(self, tmp_path: Path) -> None:
        logger = setup_logging(tmp_path)
        logger.warning("đã xác nhận", extra={"secret": "x"})
        _flush(logger)
        record = _last_record(tmp_path / "workpost.log")
        assert record["msg"] == "đã xác nhận"
        assert "secret" not in record

    def test_exception_recorded(self, tmp_path: Path) -> None:
        logger = setup_logging(tmp_path)
        try:
            raise ValueError("boom")
        except ValueError:
            logger.exception("failed")
        _flush(logger)
        assert _last_record(tmp_path / "workpost.log")["exception"] == "boom"

    def test_idempotent_setup(self, tmp_path: Path) -> None:
        logger1 = setup_logging(tmp_path)
        logger2 = setup_logging(tmp_path)
        assert logger1 is logger2
        assert len(logger1.handlers) == 1

    def test_new_path_replaces_handler(self, tmp_path: Path) -> None:
        first = tmp_path / "a"
        second = tmp_path / "b"
        first.mkdir()
        second.mkdir()
        setup_logging(first)
        logger = setup_logging(second)
        handlers = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
        assert len(handlers) == 1
        assert handlers[0].baseFilename == str((second / "workpost.log").absolute())

    def test_no_duplicate_handlers_under_concurrency(self, tmp_path: Path) -> None:
        threads = [threading.Thread(target=setup_logging, args=(tmp_path,)) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(logging.getLogger("workpost").handlers) == 1

    def test_rotation_settings(self, tmp_path: Path) -> None:
        logger = setup_logging(tmp_path)
        handler = logger.handlers[0]
        assert isinstance(handler, RotatingFileHandler)
        assert handler.maxBytes == 5 * 1024 * 1024
        assert handler.backupCount == 3


class TestRequestLogging:
    async def test_requests_logged_with_timing(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        from httpx import ASGITransport, AsyncClient

        from workpost.api import create_app

        app = create_app()
        with caplog.at_level(logging.INFO, logger="workpost.api"):
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
                await c.get("/health")
        [record] = [r for r in caplog.records if getattr(r, "event", None) == "request"]
        assert record.path == "/health"  # type: ignore[attr-defined]
        assert record.status == 200  # type: ignore[attr-defined]
        assert record.duration_ms >= 0  # type: ignore[attr-defined]
