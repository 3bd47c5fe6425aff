"""Shared utilities, types, and Protocol for DB mixins."""

from __future__ import annotations

import contextlib
import logging
import sqlite3
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from workpost.errors import StoreFailureError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from workpost.core import Channel, Post, User
    from workpost.permissions import WorkflowChannelPolicy

logger = logging.getLogger(__name__)


def _now_millis() -> int:
    return int(datetime.now(UTC).timestamp() * 1000)


def _new_id() -> str:
    """26-character identifier, the width the host platform uses."""
    return uuid.uuid4().hex[:26]


class DBMixinProtocol(Protocol):
    """Shared attributes and methods that DB mixins access via self.

    Mixins inherit this Protocol so mypy can type-check self.conn,
    self.get_post(), etc. without ``type: ignore`` on every call.
    Actual implementations are provided by WorkpostDB at composition time.
    """

    db_path: Path
    locale: str
    bot_user_id: str
    bot_username: str
    channel_policy: WorkflowChannelPolicy
    _conn: sqlite3.Connection | None

    @property
    def conn(self) -> sqlite3.Connection: ...

    def get_post(self, post_id: str) -> Post: ...

    def get_user(self, user_id: str) -> User: ...

    def get_channel(self, channel_id: str) -> Channel: ...


@contextlib.contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """Re-raise ``sqlite3.Error`` raised inside the block as ``StoreFailureError``."""
    try:
        yield
    except sqlite3.Error as exc:
        logger.error("Store failure during %s: %s", operation, exc)
        msg = f"Store failure during {operation}: {exc}"
        raise StoreFailureError(msg, details={"operation": operation}) from exc
