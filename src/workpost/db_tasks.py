"""TasksMixin: workflow records on top of the post store.

Ties the pure engines (``workflow``, ``checklists``, ``visibility``) to the
store: load a post, run the engine on an in-memory copy, persist once. A
status change notification is written after the record commit and its
failure is logged, never propagated.

Audit-style records go to the ``workpost.audit`` logger.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from workpost import checklists as checklist_engine
from workpost.db_base import DBMixinProtocol, _now_millis, store_errors
from workpost.errors import InvalidInputError, MalformedPropertyError, NotFoundError, PermissionDeniedError
from workpost.properties import TaskProperties
from workpost.types.api import ChannelTaskStats, MyTaskStats, PostList, StatusCounts
from workpost.visibility import (
    CHANNEL_LIST_KINDS,
    KIND_TO_POST_TYPE,
    TaskQuery,
    VisibilityMode,
    build_channel_tasks_query,
    build_my_task_channels_query,
    build_my_tasks_query,
)
from workpost.workflow import Actor, StatusChange, apply_status_change

if TYPE_CHECKING:
    from workpost.core import Channel, Post, User

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("workpost.audit")

OPEN_STATUSES: tuple[str, ...] = ("new", "confirmed")


def to_post_list(posts: list[Post]) -> PostList:
    """Listing shape the web client expects."""
    return {"order": [p.id for p in posts], "posts": {p.id: p.to_dict() for p in posts}}


class TasksMixin(DBMixinProtocol):
    """Plans, tasks, troubles and issues.

    Inherits ``DBMixinProtocol`` for type-safe access to shared attributes.
    Actual implementations provided by ``WorkpostDB`` at composition time via MRO.
    """

    if TYPE_CHECKING:

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
        ) -> Post: ...
        def update_post(self, post: Post) -> Post: ...
        def insert_notification(self, draft: Any) -> Post: ...
        def _select_posts(self, query: TaskQuery, *, limit: int, offset: int) -> list[Post]: ...
        def _count(self, query: TaskQuery) -> int: ...
        def _build_channel(self, row: Any) -> Channel: ...
        def can_read_channel(self, channel: Channel, user_id: str) -> bool: ...
        def can_create_in_channel(self, channel: Channel, user_id: str) -> bool: ...

    # -- Creation ------------------------------------------------------------

    def create_record(
        self,
        kind: str,
        *,
        channel_id: str,
        message: str,
        requester: User,
        props: dict[str, Any] | None = None,
        file_ids: list[str] | None = None,
        create_at: int | None = None,
    ) -> Post:
        """Create a plan, task, trouble or issue authored by the service account.

        The requester must be able to post in the channel, either as a member
        or because the channel is a workflow channel. ``create_at`` is only
        honoured for system admins.
        """
        if kind not in KIND_TO_POST_TYPE:
            msg = f"Unknown record kind '{kind}'. Valid kinds: {', '.join(KIND_TO_POST_TYPE)}"
            raise InvalidInputError(msg, details={"field": "type"})
        if props is not None and not isinstance(props, dict):
            msg = f"props must be an object, got {type(props).__name__}"
            raise InvalidInputError(msg, details={"field": "props"})

        channel = self.get_channel(channel_id)
        if not self.can_create_in_channel(channel, requester.id):
            audit_logger.info(
                "create %s denied",
                kind,
                extra={"event": "create_denied", "user_id": requester.id, "channel_id": channel_id},
            )
            msg = f"User {requester.id} may not create posts in channel {channel_id}"
            raise PermissionDeniedError(msg, details={"channel_id": channel_id, "permission": "create_post"})

        bag = copy.deepcopy(props or {})
        if kind == "task":
            bag["channel_name"] = channel.display_name
        bag["creator_id"] = requester.id
        bag["creator_name"] = requester.full_name
        bag["status"] = "new"
        try:
            TaskProperties.from_props(bag)
        except MalformedPropertyError as exc:
            raise InvalidInputError(exc.message, details=exc.details) from exc

        if create_at and not requester.is_system_admin:
            logger.debug("Ignoring create_at override from non-admin %s", requester.id)
            create_at = None

        post = self.create_post(
            channel_id=channel_id,
            user_id=self.bot_user_id,
            message=message,
            type=KIND_TO_POST_TYPE[kind],
            props=bag,
            file_ids=file_ids,
            create_at=create_at,
        )
        audit_logger.info(
            "created %s %s",
            kind,
            post.id,
            extra={"event": "create", "post_id": post.id, "user_id": requester.id, "channel_id": channel_id},
        )
        return post

    # -- Mutation ------------------------------------------------------------

    def _get_record(self, post_id: str) -> Post:
        post = self.get_post(post_id)
        if not post.kind:
            msg = f"Post {post_id} is not a workflow record"
            raise NotFoundError(msg, details={"post_id": post_id})
        return post

    def update_task(
        self,
        post_id: str,
        *,
        actor: User,
        status: str | None = None,
        priority: bool | None = None,
    ) -> StatusChange:
        """Apply a status and/or priority change, then emit the notification.

        Returns the ``StatusChange`` whose ``post`` is the persisted record.
        """
        post = self._get_record(post_id)
        change = apply_status_change(
            post,
            status=status,
            priority=priority,
            actor=Actor(id=actor.id, display_name=actor.display_name),
            now=_now_millis(),
            locale=self.locale,
        )
        if not change.changed:
            return change

        saved = self.update_post(change.post)
        audit_logger.info(
            "updated %s %s: %s -> %s",
            post.kind,
            post.id,
            change.old_status,
            change.new_status,
            extra={"event": "update_task", "post_id": post.id, "user_id": actor.id},
        )
        if change.notification is not None:
            try:
                self.insert_notification(change.notification)
            except Exception as exc:
                logger.warning(
                    "Failed to post notification for %s",
                    post.id,
                    extra={"event": "notification_failed", "post_id": post.id, "error": str(exc)},
                )
        return StatusChange(
            post=saved,
            notification=change.notification,
            old_status=change.old_status,
            new_status=change.new_status,
        )

    def set_checklist_state(self, post_id: str, checklist_idx: int, state: str | None, *, actor: User) -> Post:
        post = self._get_record(post_id)
        updated = checklist_engine.set_checklist_state(post, checklist_idx, state, actor_id=actor.id, now=_now_millis())
        saved = self.update_post(updated)
        audit_logger.info(
            "checklist %d of %s set to %r",
            checklist_idx,
            post_id,
            state,
            extra={"event": "update_checklist", "post_id": post_id, "user_id": actor.id},
        )
        return saved

    def set_checklist_item_state(
        self,
        post_id: str,
        checklist_idx: int,
        item_idx: int,
        state: str | None,
        *,
        actor: User,
    ) -> Post:
        post = self._get_record(post_id)
        updated = checklist_engine.set_checklist_item_state(
            post, checklist_idx, item_idx, state, actor_id=actor.id, now=_now_millis()
        )
        saved = self.update_post(updated)
        audit_logger.info(
            "checklist item %d/%d of %s set to %r",
            checklist_idx,
            item_idx,
            post_id,
            state,
            extra={"event": "update_checklist_item", "post_id": post_id, "user_id": actor.id},
        )
        return saved

    # -- Channel listings ----------------------------------------------------

    def _readable_channel(self, channel_id: str, user_id: str) -> Channel:
        channel = self.get_channel(channel_id)
        if not self.can_read_channel(channel, user_id):
            msg = f"User {user_id} may not read channel {channel_id}"
            raise PermissionDeniedError(msg, details={"channel_id": channel_id, "permission": "read_channel"})
        return channel

    def get_tasks_for_channel(
        self,
        channel_id: str,
        *,
        kind: str,
        statuses: list[str],
        requester_id: str,
        page: int = 0,
        per_page: int = 60,
    ) -> list[Post]:
        query = build_channel_tasks_query(channel_id, kind=kind, statuses=statuses)
        self._readable_channel(channel_id, requester_id)
        return self._select_posts(query, limit=per_page, offset=page * per_page)

    def count_tasks_for_channel(self, channel_id: str, *, kind: str, statuses: list[str], requester_id: str) -> int:
        query = build_channel_tasks_query(channel_id, kind=kind, statuses=statuses)
        self._readable_channel(channel_id, requester_id)
        return self._count(query)

    def channel_task_stats(self, channel_id: str, *, requester_id: str) -> ChannelTaskStats:
        self._readable_channel(channel_id, requester_id)
        return self._kind_stats(lambda kind, statuses: build_channel_tasks_query(channel_id, kind=kind, statuses=statuses))

    # -- "My tasks" ----------------------------------------------------------

    def get_my_tasks(
        self,
        user_id: str,
        *,
        kind: str = "task",
        mode: VisibilityMode = VisibilityMode.DEFAULT,
        statuses: list[str],
        page: int = 0,
        per_page: int = 60,
    ) -> list[Post]:
        query = build_my_tasks_query(
            user_id, mode=mode, kind=kind, statuses=statuses, suffix=self.channel_policy.suffix
        )
        return self._select_posts(query, limit=per_page, offset=page * per_page)

    def count_my_tasks(
        self,
        user_id: str,
        *,
        kind: str = "task",
        mode: VisibilityMode = VisibilityMode.DEFAULT,
        statuses: list[str],
    ) -> int:
        query = build_my_tasks_query(
            user_id, mode=mode, kind=kind, statuses=statuses, suffix=self.channel_policy.suffix
        )
        return self._count(query)

    def get_my_task_channels(self, user_id: str) -> list[Channel]:
        query = build_my_task_channels_query(user_id, suffix=self.channel_policy.suffix)
        sql, params = query.select_sql(columns="c.*")
        with store_errors("get_my_task_channels"):
            rows = self.conn.execute(sql, params).fetchall()
        return [self._build_channel(r) for r in rows]

    def my_task_stats(self, user_id: str) -> MyTaskStats:
        def count(mode: VisibilityMode, statuses: tuple[str, ...]) -> int:
            return self.count_my_tasks(user_id, mode=mode, statuses=list(statuses))

        return {
            "from_me_count": count(VisibilityMode.FROM_ME, OPEN_STATUSES),
            "to_me_count": count(VisibilityMode.TO_ME, OPEN_STATUSES),
            "is_manager_count": count(VisibilityMode.IS_MANAGER, OPEN_STATUSES),
            "done_count": count(VisibilityMode.DEFAULT, ("done",)),
            "completed_count": count(VisibilityMode.DEFAULT, ("completed",)),
        }

    def technical_stats(self, user_id: str) -> ChannelTaskStats:
        suffix = self.channel_policy.suffix
        return self._kind_stats(
            lambda kind, statuses: build_my_tasks_query(
                user_id, mode=VisibilityMode.DEFAULT, kind=kind, statuses=statuses, suffix=suffix
            )
        )

    def _kind_stats(self, build: Callable[[str, tuple[str, ...]], TaskQuery]) -> ChannelTaskStats:
        stats: dict[str, StatusCounts] = {}
        for kind in CHANNEL_LIST_KINDS:
            stats[kind] = {
                "open": self._count(build(kind, OPEN_STATUSES)),
                "done": self._count(build(kind, ("done",))),
                "completed": self._count(build(kind, ("completed",))),
            }
        return stats  # type: ignore[return-value]
