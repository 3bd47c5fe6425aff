"""PostsMixin: the generic message store.

Posts carry their property bag as JSON text. Every write here is a single
statement followed by a commit, so a failed write leaves the stored record
exactly as it was.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import TYPE_CHECKING, Any

from workpost.db_base import DBMixinProtocol, _new_id, _now_millis, store_errors
from workpost.errors import MalformedPropertyError, NotFoundError

if TYPE_CHECKING:
    from workpost.core import Post
    from workpost.visibility import TaskQuery
    from workpost.workflow import NotificationDraft

logger = logging.getLogger(__name__)


class PostsMixin(DBMixinProtocol):
    """Create, load and persist posts; run visibility queries."""

    def _build_post(self, row: sqlite3.Row) -> Post:
        from workpost.core import Post

        try:
            props = json.loads(row["props"] or "{}")
            file_ids = json.loads(row["file_ids"] or "[]")
        except json.JSONDecodeError as exc:
            msg = f"Post {row['id']} has an unreadable property bag: {exc}"
            raise MalformedPropertyError(msg, details={"post_id": row["id"]}) from exc
        if not isinstance(props, dict):
            msg = f"Post {row['id']} props must be an object, got {type(props).__name__}"
            raise MalformedPropertyError(msg, details={"post_id": row["id"], "property": "props"})
        return Post(
            id=row["id"],
            channel_id=row["channel_id"],
            user_id=row["user_id"],
            root_id=row["root_id"],
            type=row["type"],
            message=row["message"],
            props=props,
            file_ids=file_ids if isinstance(file_ids, list) else [],
            create_at=row["create_at"],
            update_at=row["update_at"],
            delete_at=row["delete_at"],
        )

    def create_post(
        self,
        *,
        channel_id: str,
        user_id: str,
        message: str = "",
        type: str = "",
        props: dict[str, Any] | None = None,
        file_ids: list[str] | None = None,
        root_id: str = "",
        create_at: int | None = None,
    ) -> Post:
        post_id = _new_id()
        now = _now_millis()
        created = create_at or now
        with store_errors("create_post"):
            try:
                self.conn.execute(
                    "INSERT INTO posts (id, channel_id, user_id, root_id, type, message, props, file_ids, "
                    "create_at, update_at, delete_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0)",
                    (
                        post_id,
                        channel_id,
                        user_id,
                        root_id,
                        type,
                        message,
                        json.dumps(props or {}, ensure_ascii=False),
                        json.dumps(file_ids or []),
                        created,
                        created,
                    ),
                )
                self.conn.commit()
            except Exception:
                self.conn.rollback()
                raise
        return self.get_post(post_id)

    def get_post(self, post_id: str) -> Post:
        with store_errors("get_post"):
            row = self.conn.execute("SELECT * FROM posts WHERE id = ? AND delete_at = 0", (post_id,)).fetchone()
        if row is None:
            msg = f"Post not found: {post_id}"
            raise NotFoundError(msg, details={"post_id": post_id})
        return self._build_post(row)

    def update_post(self, post: Post) -> Post:
        """Persist *post*'s property bag in one statement. Last writer wins."""
        now = _now_millis()
        with store_errors("update_post"):
            try:
                cursor = self.conn.execute(
                    "UPDATE posts SET props = ?, update_at = ? WHERE id = ? AND delete_at = 0",
                    (json.dumps(post.props, ensure_ascii=False), now, post.id),
                )
                if cursor.rowcount == 0:
                    msg = f"Post not found: {post.id}"
                    raise NotFoundError(msg, details={"post_id": post.id})
                self.conn.commit()
            except Exception:
                self.conn.rollback()
                raise
        return self.get_post(post.id)

    def insert_notification(self, draft: NotificationDraft) -> Post:
        return self.create_post(
            channel_id=draft.channel_id,
            user_id=draft.user_id,
            root_id=draft.root_id,
            type=draft.type,
            message=draft.message,
            props=draft.props,
        )

    def get_thread(self, root_id: str) -> list[Post]:
        """Replies to *root_id*, oldest first."""
        with store_errors("get_thread"):
            rows = self.conn.execute(
                "SELECT * FROM posts WHERE root_id = ? AND delete_at = 0 ORDER BY create_at, id",
                (root_id,),
            ).fetchall()
        return [self._build_post(r) for r in rows]

    # -- Query execution -----------------------------------------------------

    def _select_posts(self, query: TaskQuery, *, limit: int, offset: int) -> list[Post]:
        sql, params = query.select_sql(limit=limit, offset=offset)
        with store_errors("select_posts"):
            rows = self.conn.execute(sql, params).fetchall()
        return [self._build_post(r) for r in rows]

    def _count(self, query: TaskQuery) -> int:
        sql, params = query.count_sql()
        with store_errors("count"):
            result: int = self.conn.execute(sql, params).fetchone()[0]
        return result
