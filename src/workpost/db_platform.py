"""PlatformMixin: users, teams, channels and memberships.

A thin local model of the host chat platform. Workflow code only needs to
look these up and answer membership questions; nothing here is workflow
specific except the channel-suffix fallback in ``can_create_in_channel``
and ``can_read_channel``.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import TYPE_CHECKING

from workpost.db_base import DBMixinProtocol, _new_id, _now_millis, store_errors
from workpost.errors import InvalidInputError, NotFoundError

if TYPE_CHECKING:
    from workpost.core import Channel, Team, User

logger = logging.getLogger(__name__)

VALID_CHANNEL_TYPES = frozenset({"O", "P", "G", "D"})


class PlatformMixin(DBMixinProtocol):
    """Users, teams, channels and the two membership relations.

    Inherits ``DBMixinProtocol`` for type-safe access to shared attributes.
    Actual implementations provided by ``WorkpostDB`` at composition time via MRO.
    """

    # -- Users ---------------------------------------------------------------

    def create_user(
        self,
        username: str,
        *,
        first_name: str = "",
        last_name: str = "",
        nickname: str = "",
        roles: str = "system_user",
        user_id: str | None = None,
    ) -> User:
        if not username or not username.strip():
            msg = "Username cannot be empty"
            raise InvalidInputError(msg, details={"field": "username"})
        user_id = user_id or _new_id()
        with store_errors("create_user"):
            try:
                self.conn.execute(
                    "INSERT INTO users (id, username, first_name, last_name, nickname, roles, create_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (user_id, username.strip(), first_name, last_name, nickname, roles, _now_millis()),
                )
                self.conn.commit()
            except sqlite3.IntegrityError as exc:
                self.conn.rollback()
                msg = f"User already exists: {username}"
                raise InvalidInputError(msg, details={"field": "username"}) from exc
            except Exception:
                self.conn.rollback()
                raise
        return self.get_user(user_id)

    def get_user(self, user_id: str) -> User:
        from workpost.core import User

        with store_errors("get_user"):
            row = self.conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            msg = f"User not found: {user_id}"
            raise NotFoundError(msg, details={"user_id": user_id})
        return User(
            id=row["id"],
            username=row["username"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            nickname=row["nickname"],
            roles=row["roles"],
        )

    def ensure_bot_user(self) -> None:
        """Create the service account that authors workflow records, if missing.

        Does not commit; ``initialize()`` does.
        """
        self.conn.execute(
            "INSERT OR IGNORE INTO users (id, username, roles, create_at) VALUES (?, ?, 'system_user', ?)",
            (self.bot_user_id, self.bot_username, _now_millis()),
        )

    # -- Teams ---------------------------------------------------------------

    def create_team(self, name: str, *, display_name: str = "", team_id: str | None = None) -> Team:
        if not name or not name.strip():
            msg = "Team name cannot be empty"
            raise InvalidInputError(msg, details={"field": "name"})
        team_id = team_id or _new_id()
        with store_errors("create_team"):
            try:
                self.conn.execute(
                    "INSERT INTO teams (id, name, display_name) VALUES (?, ?, ?)",
                    (team_id, name.strip(), display_name or name.strip()),
                )
                self.conn.commit()
            except sqlite3.IntegrityError as exc:
                self.conn.rollback()
                msg = f"Team already exists: {name}"
                raise InvalidInputError(msg, details={"field": "name"}) from exc
            except Exception:
                self.conn.rollback()
                raise
        return self.get_team(team_id)

    def get_team(self, team_id: str) -> Team:
        from workpost.core import Team

        with store_errors("get_team"):
            row = self.conn.execute("SELECT * FROM teams WHERE id = ?", (team_id,)).fetchone()
        if row is None:
            msg = f"Team not found: {team_id}"
            raise NotFoundError(msg, details={"team_id": team_id})
        return Team(id=row["id"], name=row["name"], display_name=row["display_name"])

    def add_team_member(self, team_id: str, user_id: str) -> bool:
        self.get_team(team_id)
        self.get_user(user_id)
        with store_errors("add_team_member"):
            cursor = self.conn.execute(
                "INSERT OR IGNORE INTO team_members (team_id, user_id) VALUES (?, ?)",
                (team_id, user_id),
            )
            self.conn.commit()
        return cursor.rowcount > 0

    # -- Channels ------------------------------------------------------------

    def create_channel(
        self,
        name: str,
        *,
        team_id: str = "",
        display_name: str = "",
        type: str = "O",
        channel_id: str | None = None,
    ) -> Channel:
        if not name or not name.strip():
            msg = "Channel name cannot be empty"
            raise InvalidInputError(msg, details={"field": "name"})
        if type not in VALID_CHANNEL_TYPES:
            msg = f"Invalid channel type '{type}'. Must be one of: {', '.join(sorted(VALID_CHANNEL_TYPES))}"
            raise InvalidInputError(msg, details={"field": "type"})
        channel_id = channel_id or _new_id()
        with store_errors("create_channel"):
            try:
                self.conn.execute(
                    "INSERT INTO channels (id, team_id, name, display_name, type, create_at) VALUES (?, ?, ?, ?, ?, ?)",
                    (channel_id, team_id, name.strip(), display_name or name.strip(), type, _now_millis()),
                )
                self.conn.commit()
            except Exception:
                self.conn.rollback()
                raise
        return self.get_channel(channel_id)

    def get_channel(self, channel_id: str) -> Channel:
        with store_errors("get_channel"):
            row = self.conn.execute("SELECT * FROM channels WHERE id = ?", (channel_id,)).fetchone()
        if row is None:
            msg = f"Channel not found: {channel_id}"
            raise NotFoundError(msg, details={"channel_id": channel_id})
        return self._build_channel(row)

    def _build_channel(self, row: sqlite3.Row) -> Channel:
        from workpost.core import Channel

        return Channel(
            id=row["id"],
            team_id=row["team_id"],
            name=row["name"],
            display_name=row["display_name"],
            type=row["type"],
            create_at=row["create_at"],
            delete_at=row["delete_at"],
        )

    def add_channel_member(self, channel_id: str, user_id: str) -> bool:
        self.get_channel(channel_id)
        self.get_user(user_id)
        with store_errors("add_channel_member"):
            cursor = self.conn.execute(
                "INSERT OR IGNORE INTO channel_members (channel_id, user_id) VALUES (?, ?)",
                (channel_id, user_id),
            )
            self.conn.commit()
        return cursor.rowcount > 0

    # -- Membership and access -----------------------------------------------

    def is_channel_member(self, channel_id: str, user_id: str) -> bool:
        with store_errors("is_channel_member"):
            row = self.conn.execute(
                "SELECT 1 FROM channel_members WHERE channel_id = ? AND user_id = ?",
                (channel_id, user_id),
            ).fetchone()
        return row is not None

    def is_workflow_team_member(self, channel: Channel, user_id: str) -> bool:
        """True if *user_id* belongs to the team whose workflow channel is *channel*."""
        if not self.channel_policy.allows(channel):
            return False
        with store_errors("is_workflow_team_member"):
            row = self.conn.execute(
                "SELECT 1 FROM teams t JOIN team_members tm ON t.id = tm.team_id "
                "WHERE tm.user_id = ? AND t.name || ? = ?",
                (user_id, self.channel_policy.suffix, channel.name),
            ).fetchone()
        return row is not None

    def can_read_channel(self, channel: Channel, user_id: str) -> bool:
        return self.is_channel_member(channel.id, user_id) or self.is_workflow_team_member(channel, user_id)

    def can_create_in_channel(self, channel: Channel, user_id: str) -> bool:
        """Channel members may post; anyone may post in a workflow channel."""
        if channel.delete_at != 0:
            return False
        return self.is_channel_member(channel.id, user_id) or self.channel_policy.allows(channel)
