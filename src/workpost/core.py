"""Core database operations for workpost.

Single source of truth for all SQLite operations. Both the CLI and the HTTP
API import from this module. No daemon, just direct SQLite with WAL mode.

Convention-based discovery: each project has a `.workpost/` directory
containing `workpost.db` (SQLite) and `config.json` (locale, service account,
workflow channel suffix).
"""

from __future__ import annotations

import json
import logging
import os
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypedDict

from workpost.db_platform import PlatformMixin
from workpost.db_posts import PostsMixin
from workpost.db_schema import CURRENT_SCHEMA_VERSION, SCHEMA_SQL
from workpost.db_tasks import TasksMixin
from workpost.messages import DEFAULT_LOCALE, resolve_locale
from workpost.permissions import DEFAULT_WORKFLOW_SUFFIX, WorkflowChannelPolicy, resolve_suffix
from workpost.types.core import ChannelDict, EpochMillis, PostDict, UserDict
from workpost.visibility import POST_TYPE_TO_KIND

logger = logging.getLogger(__name__)


class ProjectConfig(TypedDict, total=False):
    """Shape of .workpost/config.json."""

    version: int
    locale: str
    bot_user_id: str
    bot_username: str
    workflow_channel_suffix: str


# ---------------------------------------------------------------------------
# Convention-based discovery
# ---------------------------------------------------------------------------

WORKPOST_DIR_NAME = ".workpost"
DB_FILENAME = "workpost.db"
CONFIG_FILENAME = "config.json"
LOCALE_ENV_VAR = "WORKPOST_LOCALE"

DEFAULT_BOT_USER_ID = "workpost-bot"
DEFAULT_BOT_USERNAME = "workpost"


def default_config() -> ProjectConfig:
    return ProjectConfig(
        version=1,
        locale=DEFAULT_LOCALE,
        bot_user_id=DEFAULT_BOT_USER_ID,
        bot_username=DEFAULT_BOT_USERNAME,
        workflow_channel_suffix=DEFAULT_WORKFLOW_SUFFIX,
    )


def find_workpost_root(start: Path | None = None) -> Path:
    """Walk up from start (default cwd) looking for .workpost/ directory.

    Returns the .workpost/ directory path (not the project root).
    """
    current = (start or Path.cwd()).resolve()
    for parent in [current, *current.parents]:
        candidate = parent / WORKPOST_DIR_NAME
        if candidate.is_dir():
            return candidate
    msg = f"No {WORKPOST_DIR_NAME}/ directory found in {current} or any parent"
    raise FileNotFoundError(msg)


def read_config(workpost_dir: Path) -> ProjectConfig:
    """Read .workpost/config.json over the defaults. Returns defaults if missing or corrupt."""
    config = default_config()
    config_path = workpost_dir / CONFIG_FILENAME
    if not config_path.exists():
        return config
    try:
        loaded = json.loads(config_path.read_text())
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read %s, using defaults: %s", config_path, exc)
        return config
    if not isinstance(loaded, dict):
        logger.warning("Ignoring %s: expected a JSON object, got %s", config_path, type(loaded).__name__)
        return config
    config.update(loaded)  # type: ignore[typeddict-item]
    return config


def write_config(workpost_dir: Path, config: dict[str, Any] | ProjectConfig) -> None:
    """Write .workpost/config.json."""
    config_path = workpost_dir / CONFIG_FILENAME
    config_path.write_text(json.dumps(config, indent=2, ensure_ascii=False) + "\n")


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass
class Post:
    id: str
    channel_id: str
    user_id: str
    root_id: str = ""
    type: str = ""
    message: str = ""
    props: dict[str, Any] = field(default_factory=dict)
    file_ids: list[str] = field(default_factory=list)
    create_at: int = 0
    update_at: int = 0
    delete_at: int = 0

    @property
    def kind(self) -> str:
        """Record kind (plan/task/trouble/issue), or "" for other posts."""
        return POST_TYPE_TO_KIND.get(self.type, "")

    def to_dict(self) -> PostDict:
        return {
            "id": self.id,
            "create_at": EpochMillis(self.create_at),
            "update_at": EpochMillis(self.update_at),
            "delete_at": EpochMillis(self.delete_at),
            "user_id": self.user_id,
            "channel_id": self.channel_id,
            "root_id": self.root_id,
            "type": self.type,
            "message": self.message,
            "props": self.props,
            "file_ids": self.file_ids,
        }


@dataclass
class User:
    id: str
    username: str
    first_name: str = ""
    last_name: str = ""
    nickname: str = ""
    roles: str = "system_user"

    @property
    def full_name(self) -> str:
        """"first last", or the username when both are empty."""
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.username

    @property
    def display_name(self) -> str:
        """Nickname, then full name, then username."""
        return self.nickname or self.full_name

    @property
    def is_system_admin(self) -> bool:
        return "system_admin" in self.roles.split()

    def to_dict(self) -> UserDict:
        return {
            "id": self.id,
            "username": self.username,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "nickname": self.nickname,
            "roles": self.roles,
        }


@dataclass
class Team:
    id: str
    name: str
    display_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "display_name": self.display_name}


@dataclass
class Channel:
    id: str
    name: str
    team_id: str = ""
    display_name: str = ""
    type: str = "O"
    create_at: int = 0
    delete_at: int = 0

    def to_dict(self) -> ChannelDict:
        return {
            "id": self.id,
            "team_id": self.team_id,
            "name": self.name,
            "display_name": self.display_name,
            "type": self.type,
            "create_at": EpochMillis(self.create_at),
            "delete_at": EpochMillis(self.delete_at),
        }


# ---------------------------------------------------------------------------
# WorkpostDB
# ---------------------------------------------------------------------------


class WorkpostDB(PlatformMixin, PostsMixin, TasksMixin):
    """Direct SQLite operations. No daemon. Importable by CLI and API."""

    def __init__(
        self,
        db_path: str | Path,
        *,
        locale: str = DEFAULT_LOCALE,
        bot_user_id: str = DEFAULT_BOT_USER_ID,
        bot_username: str = DEFAULT_BOT_USERNAME,
        workflow_suffix: str = DEFAULT_WORKFLOW_SUFFIX,
        check_same_thread: bool = True,
    ) -> None:
        self.db_path = Path(db_path)
        self.locale = resolve_locale(locale)
        self.bot_user_id = bot_user_id
        self.bot_username = bot_username
        self.channel_policy = WorkflowChannelPolicy(workflow_suffix)
        self._conn: sqlite3.Connection | None = None
        self._check_same_thread = check_same_thread

    @classmethod
    def from_project(cls, project_path: Path | None = None, *, check_same_thread: bool = True) -> WorkpostDB:
        """Create a WorkpostDB by discovering .workpost/ from project_path (or cwd)."""
        workpost_dir = find_workpost_root(project_path)
        config = read_config(workpost_dir)
        db = cls(
            workpost_dir / DB_FILENAME,
            locale=os.environ.get(LOCALE_ENV_VAR, "").strip() or config.get("locale", DEFAULT_LOCALE),
            bot_user_id=config.get("bot_user_id", DEFAULT_BOT_USER_ID),
            bot_username=config.get("bot_username", DEFAULT_BOT_USERNAME),
            workflow_suffix=resolve_suffix(config),
            check_same_thread=check_same_thread,
        )
        db.initialize()
        return db

    def __enter__(self) -> WorkpostDB:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(
                str(self.db_path),
                isolation_level="DEFERRED",
                check_same_thread=self._check_same_thread,
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA foreign_keys=ON")
            self._conn.execute("PRAGMA busy_timeout=5000")
        return self._conn

    def initialize(self) -> None:
        """Create tables on a fresh database, then make sure the service account exists."""
        current_version = self.get_schema_version()
        if current_version == 0:
            self.conn.executescript(SCHEMA_SQL)
            self.conn.execute(f"PRAGMA user_version = {CURRENT_SCHEMA_VERSION}")
        elif current_version > CURRENT_SCHEMA_VERSION:
            msg = f"Database schema v{current_version} is newer than this workpost (v{CURRENT_SCHEMA_VERSION})"
            raise RuntimeError(msg)
        self.ensure_bot_user()
        self.conn.commit()

    def get_schema_version(self) -> int:
        """Return the current schema version from PRAGMA user_version."""
        result: int = self.conn.execute("PRAGMA user_version").fetchone()[0]
        return result

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
