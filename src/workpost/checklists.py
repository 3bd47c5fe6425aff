"""Checklist mutation engine.

Checklists live in a record's ``checklists`` property; each has ``items``.
Both levels are addressed by their position in the stored list. A mutation
replaces the target's ``state``, ``updated_at`` and ``updated_by`` and leaves
every sibling untouched. The full ``checklists`` value is handed back on a
post copy for a single persist call.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING, Any, TypeVar

from workpost.errors import IndexOutOfRangeError
from workpost.properties import TaskProperties

if TYPE_CHECKING:
    from collections.abc import Sequence

    from workpost.core import Post

_T = TypeVar("_T")


def _at(seq: Sequence[_T], idx: int, what: str) -> _T:
    if idx < 0 or idx >= len(seq):
        msg = f"{what} index {idx} out of range (have {len(seq)})"
        raise IndexOutOfRangeError(msg, details={"index": idx, "length": len(seq), "target": what})
    return seq[idx]


def set_checklist_state(post: Post, checklist_idx: int, state: str | None, *, actor_id: str, now: int) -> Post:
    props = TaskProperties.from_props(post.props)
    checklist = _at(props.checklists, checklist_idx, "checklist")
    checklist.set_state(state, at=now, by=actor_id)
    return replace(post, props=props.to_props())


def set_checklist_item_state(
    post: Post,
    checklist_idx: int,
    item_idx: int,
    state: str | None,
    *,
    actor_id: str,
    now: int,
) -> Post:
    props = TaskProperties.from_props(post.props)
    checklist = _at(props.checklists, checklist_idx, "checklist")
    item = _at(checklist.items, item_idx, "checklist item")
    item.set_state(state, at=now, by=actor_id)
    return replace(post, props=props.to_props())


def checklists_of(post: Post) -> list[dict[str, Any]]:
    """The serialised ``checklists`` value, as the API returns it."""
    value = post.props.get("checklists")
    return value if isinstance(value, list) else []
