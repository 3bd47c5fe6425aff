"""Status transition engine for plan/task/trouble/issue records.

Pure functions: callers pass an in-memory post and get back an updated copy
plus an optional notification draft. Nothing here touches the store, and the
input post is never mutated, so a rejected transition leaves no trace.

State machine::

    new ──► confirmed ──► done ──► completed
     │                   ▲  │
     └───────────────────┘  └──► confirmed   (restore / redo)

``completed`` is terminal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from workpost.errors import InvalidTransitionError, MalformedPropertyError
from workpost.messages import narrate
from workpost.properties import STATUSES, TaskProperties

if TYPE_CHECKING:
    from workpost.core import Post

logger = logging.getLogger(__name__)

NOTIFICATION_POST_TYPE = "custom_task_updated"

TRANSITIONS: dict[str, tuple[str, ...]] = {
    "new": ("confirmed", "done"),
    "confirmed": ("done",),
    "done": ("confirmed", "completed"),
    "completed": (),
}

TERMINAL_STATUSES: frozenset[str] = frozenset(s for s, nxt in TRANSITIONS.items() if not nxt)


@dataclass(frozen=True)
class Actor:
    """The user performing a change, as it should appear in stamps and prose."""

    id: str
    display_name: str


@dataclass(frozen=True)
class NotificationDraft:
    """A follow-up post describing a change. Persisted after the task commit."""

    user_id: str
    channel_id: str
    root_id: str
    message: str
    props: dict[str, Any] = field(default_factory=dict)
    type: str = NOTIFICATION_POST_TYPE


@dataclass(frozen=True)
class StatusChange:
    post: Post
    notification: NotificationDraft | None
    old_status: str
    new_status: str

    @property
    def changed(self) -> bool:
        return self.notification is not None


def allowed_next(status: str) -> tuple[str, ...]:
    """Statuses reachable from *status*. Raises for unknown current statuses."""
    if status not in TRANSITIONS:
        msg = f"Stored status {status!r} is not one of {', '.join(STATUSES)}"
        raise MalformedPropertyError(msg, details={"property": "status", "value": status})
    return TRANSITIONS[status]


def validate_transition(current: str, requested: str) -> None:
    """Raise ``InvalidTransitionError`` unless current -> requested is in the table."""
    allowed = allowed_next(current)
    if requested not in allowed:
        raise InvalidTransitionError(current, requested, allowed)


def stamp_name(current: str, requested: str) -> str:
    """Property prefix written for a transition.

    Reopening a done record is recorded as a restore so the first
    confirmation stamp survives.
    """
    if requested == "confirmed" and current == "done":
        return "restored"
    return requested


def apply_status_change(
    post: Post,
    *,
    status: str | None,
    priority: bool | None,
    actor: Actor,
    now: int,
    locale: str,
) -> StatusChange:
    """Validate and apply a status and/or priority change to *post*.

    Returns the updated copy and the narrative notification, or ``None`` for
    the notification when nothing changed.
    """
    props = TaskProperties.from_props(post.props)
    old_status = props.status

    if status is not None:
        validate_transition(old_status, status)

    sentences: list[str] = []
    notif_props: dict[str, Any] = {"task_id": post.id, "task_type": post.kind}

    if status is not None:
        slot = stamp_name(old_status, status)
        props.status = status
        props.stamp(slot, at=now, by=actor.id, by_name=actor.display_name)
        notif_props["old_status"] = old_status
        notif_props["new_status"] = status
        sentences.append(narrate(slot, locale=locale, actor=actor.display_name, kind=post.kind, text=post.message))

    if priority is not None and props.priority != priority:
        props.priority = priority
        props.stamp("priority", at=now, by=actor.id, by_name=actor.display_name)
        event = "priority_on" if priority else "priority_off"
        sentences.append(narrate(event, locale=locale, actor=actor.display_name, kind=post.kind, text=post.message))

    if not sentences:
        return StatusChange(post=post, notification=None, old_status=old_status, new_status=old_status)

    updated = replace(post, props=props.to_props())
    draft = NotificationDraft(
        user_id=post.user_id,
        channel_id=post.channel_id,
        root_id=post.id,
        message="\n".join(sentences),
        props=notif_props,
    )
    logger.debug("Status change on %s: %s -> %s", post.id, old_status, props.status)
    return StatusChange(post=updated, notification=draft, old_status=old_status, new_status=props.status)
