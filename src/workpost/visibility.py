"""Visibility query builder: "which records may this user see".

Builds parameterised SQL predicates over the ``posts`` table (aliased ``p``)
and the ``channels`` table (aliased ``c``). Construction is pure: the same
(requester, mode, kind, statuses, suffix) always yields an equal
``TaskQuery``, and nothing here touches the database. Invalid filters raise
``InvalidInputError`` before any SQL is run.

Property-bag fields are read with SQLite JSON1: ``json_extract`` for scalars
and ``json_each`` for membership in the id lists.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

from workpost.errors import InvalidInputError
from workpost.properties import STATUSES

KIND_TO_POST_TYPE: dict[str, str] = {
    "plan": "custom_plan",
    "task": "custom_task",
    "trouble": "custom_trouble",
    "issue": "custom_issue",
}
POST_TYPE_TO_KIND: dict[str, str] = {v: k for k, v in KIND_TO_POST_TYPE.items()}

# Kinds the channel-scoped endpoints accept.
CHANNEL_LIST_KINDS: tuple[str, ...] = ("trouble", "issue", "plan")

GROUP_CHANNEL_TYPE = "G"

# Largest page the listing endpoints hand out.
MAX_PER_PAGE = 200
DEFAULT_PER_PAGE = 60


class VisibilityMode(enum.Enum):
    DEFAULT = "default"
    FROM_ME = "from_me"
    TO_ME = "to_me"
    IS_MANAGER = "is_manager"


_MODE_BY_TYPE = {m.value: m for m in VisibilityMode if m is not VisibilityMode.DEFAULT}


@dataclass(frozen=True)
class TaskQuery:
    """A WHERE clause as condition fragments plus their bound parameters."""

    table: str
    conditions: tuple[str, ...]
    params: tuple[Any, ...]
    order_by: str = "p.create_at DESC, p.id DESC"

    def where_sql(self) -> str:
        return " AND ".join(f"({c})" for c in self.conditions)

    def select_sql(self, *, columns: str = "p.*", limit: int | None = None, offset: int = 0) -> tuple[str, tuple[Any, ...]]:
        sql = f"SELECT {columns} FROM {self.table} WHERE {self.where_sql()} ORDER BY {self.order_by}"
        params = self.params
        if limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params = (*params, limit, offset)
        return sql, params

    def count_sql(self) -> tuple[str, tuple[Any, ...]]:
        return f"SELECT COUNT(*) FROM {self.table} WHERE {self.where_sql()}", self.params


# ---------------------------------------------------------------------------
# Parameter parsing
# ---------------------------------------------------------------------------


def parse_my_tasks_type(raw: str | None) -> tuple[str, VisibilityMode]:
    """Split the overloaded ``type`` parameter of the "my tasks" endpoints.

    ``trouble``/``issue``/``plan`` pick the kind. ``from_me``/``to_me``/
    ``is_manager`` pick a relationship mode over tasks. Anything else,
    including no value and the client's ``all``, means tasks in default mode.
    """
    value = (raw or "").strip()
    if value in CHANNEL_LIST_KINDS:
        return value, VisibilityMode.DEFAULT
    if value in _MODE_BY_TYPE:
        return "task", _MODE_BY_TYPE[value]
    return "task", VisibilityMode.DEFAULT


def parse_channel_tasks_type(raw: str | None) -> str:
    value = (raw or "").strip()
    if value not in CHANNEL_LIST_KINDS:
        msg = f"Invalid value for type: {raw!r}. Must be one of: {', '.join(CHANNEL_LIST_KINDS)}"
        raise InvalidInputError(msg, details={"param": "type", "value": raw})
    return value


def validate_statuses(statuses: list[str] | tuple[str, ...] | None) -> tuple[str, ...]:
    """Return *statuses* deduplicated in first-seen order; reject empty or unknown."""
    if not statuses:
        raise InvalidInputError("status[] is required and must not be empty", details={"param": "status"})
    unknown = [s for s in statuses if s not in STATUSES]
    if unknown:
        msg = f"Unknown status value(s): {', '.join(unknown)}. Valid: {', '.join(STATUSES)}"
        raise InvalidInputError(msg, details={"param": "status", "value": unknown})
    return tuple(dict.fromkeys(statuses))


def _validate_suffix(suffix: str) -> None:
    if not suffix:
        raise InvalidInputError("workflow channel suffix must not be empty", details={"param": "suffix"})


# ---------------------------------------------------------------------------
# Predicate fragments
# ---------------------------------------------------------------------------

_CREATOR_IS = "json_extract(p.props, '$.creator_id') = ?"
_IN_ASSIGNEES = "EXISTS (SELECT 1 FROM json_each(p.props, '$.assignee_ids') a WHERE a.value = ?)"
_IN_MANAGERS = "EXISTS (SELECT 1 FROM json_each(p.props, '$.manager_ids') m WHERE m.value = ?)"

_POST_CHANNEL_MEMBER = "EXISTS (SELECT 1 FROM channel_members cm WHERE cm.channel_id = p.channel_id AND cm.user_id = ?)"
_POST_TEAM_MEMBER = (
    "EXISTS (SELECT 1 FROM teams t"
    " JOIN team_members tm ON t.id = tm.team_id"
    " JOIN channels ch ON ch.id = p.channel_id"
    " WHERE tm.user_id = ? AND ch.name = t.name || ?)"
)

_CHANNEL_MEMBER = "EXISTS (SELECT 1 FROM channel_members cm WHERE cm.channel_id = c.id AND cm.user_id = ?)"
_CHANNEL_TEAM_MEMBER = (
    "EXISTS (SELECT 1 FROM teams t"
    " JOIN team_members tm ON t.id = tm.team_id"
    " WHERE tm.user_id = ? AND c.name = t.name || ?)"
)


def _base(kind: str, statuses: tuple[str, ...]) -> tuple[list[str], list[Any]]:
    placeholders = ",".join("?" * len(statuses))
    conditions = [
        "p.delete_at = 0",
        "p.type = ?",
        f"json_extract(p.props, '$.status') IN ({placeholders})",
    ]
    return conditions, [KIND_TO_POST_TYPE[kind], *statuses]


def _check_kind(kind: str) -> None:
    if kind not in KIND_TO_POST_TYPE:
        msg = f"Unknown record kind {kind!r}. Valid: {', '.join(KIND_TO_POST_TYPE)}"
        raise InvalidInputError(msg, details={"param": "type", "value": kind})


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def build_my_tasks_query(
    user_id: str,
    *,
    mode: VisibilityMode,
    kind: str,
    statuses: list[str] | tuple[str, ...],
    suffix: str,
) -> TaskQuery:
    """Records relevant to *user_id* under *mode*.

    Relationship modes read the property bag. Default mode for tasks is any
    of the three relationships; for other kinds it is channel membership or
    membership of the team the workflow channel is named after.
    """
    _check_kind(kind)
    checked = validate_statuses(statuses)
    conditions, params = _base(kind, checked)

    if mode is VisibilityMode.FROM_ME:
        conditions.append(_CREATOR_IS)
        params.append(user_id)
    elif mode is VisibilityMode.TO_ME:
        conditions.append(_IN_ASSIGNEES)
        params.append(user_id)
    elif mode is VisibilityMode.IS_MANAGER:
        conditions.append(_IN_MANAGERS)
        params.append(user_id)
    elif kind == "task":
        conditions.append(f"{_CREATOR_IS} OR {_IN_ASSIGNEES} OR {_IN_MANAGERS}")
        params.extend([user_id, user_id, user_id])
    else:
        _validate_suffix(suffix)
        conditions.append(f"{_POST_CHANNEL_MEMBER} OR {_POST_TEAM_MEMBER}")
        params.extend([user_id, user_id, suffix])

    return TaskQuery(table="posts p", conditions=tuple(conditions), params=tuple(params))


def build_channel_tasks_query(channel_id: str, *, kind: str, statuses: list[str] | tuple[str, ...]) -> TaskQuery:
    _check_kind(kind)
    checked = validate_statuses(statuses)
    conditions, params = _base(kind, checked)
    conditions.insert(0, "p.channel_id = ?")
    params.insert(0, channel_id)
    return TaskQuery(table="posts p", conditions=tuple(conditions), params=tuple(params))


def build_my_task_channels_query(user_id: str, *, suffix: str) -> TaskQuery:
    """Group channels following the workflow naming convention that *user_id* can reach."""
    _validate_suffix(suffix)
    conditions = (
        "c.type = ?",
        "c.delete_at = 0",
        # case-sensitive suffix match
        "substr(c.name, -length(?)) = ?",
        f"{_CHANNEL_MEMBER} OR {_CHANNEL_TEAM_MEMBER}",
    )
    params = (GROUP_CHANNEL_TYPE, suffix, suffix, user_id, user_id, suffix)
    return TaskQuery(table="channels c", conditions=conditions, params=params, order_by="c.id ASC")
