"""TypedDicts for API route responses."""

from __future__ import annotations

from typing import Any, TypedDict

from workpost.types.core import PostDict

# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


class PostList(TypedDict):
    """Listing shape the web client expects: ids in display order plus a lookup table."""

    order: list[str]
    posts: dict[str, PostDict]


class CountResponse(TypedDict):
    count: int


class ErrorBody(TypedDict):
    message: str
    code: str
    details: dict[str, Any]


class ErrorResponse(TypedDict):
    """Standard error envelope returned by every failing route."""

    error: ErrorBody


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


class MyTaskStats(TypedDict):
    """Counters behind the "my tasks" badge.

    The three relationship counts cover open tasks (new or confirmed).
    """

    from_me_count: int
    to_me_count: int
    is_manager_count: int
    done_count: int
    completed_count: int


class StatusCounts(TypedDict):
    open: int
    done: int
    completed: int


class ChannelTaskStats(TypedDict):
    """Per-kind counts for troubles, issues and plans."""

    trouble: StatusCounts
    issue: StatusCounts
    plan: StatusCounts
