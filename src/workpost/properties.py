"""Typed view of a workflow record's property bag.

Posts store workflow fields in a schemaless JSON object. This module parses
that object once, on load, into dataclasses and raises
``MalformedPropertyError`` when the shape has drifted. ``to_props()`` writes
the view back onto a copy of the original bag, so keys this module does not
know about (``title``, ``start_date``, ``customer_name``, ...) keep their
values and their position.

Checklists and items are addressed by position only. There is no stable
identifier: a concurrent reorder between read and write makes an index point
at a different element, and the later write wins.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from workpost.errors import MalformedPropertyError

STATUSES: tuple[str, ...] = ("new", "confirmed", "done", "completed")

# Transition targets plus the "restored" slot used for done -> confirmed.
STAMP_NAMES: tuple[str, ...] = ("confirmed", "done", "completed", "restored", "priority")


def _expect_list(value: Any, name: str) -> list[Any]:
    if not isinstance(value, list):
        msg = f"'{name}' must be a list, got {type(value).__name__}"
        raise MalformedPropertyError(msg, details={"property": name})
    return value


def _expect_dict(value: Any, name: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        msg = f"'{name}' must be an object, got {type(value).__name__}"
        raise MalformedPropertyError(msg, details={"property": name})
    return value


def _expect_str_list(value: Any, name: str) -> list[str]:
    items = _expect_list(value, name)
    if not all(isinstance(i, str) for i in items):
        msg = f"'{name}' must be a list of strings"
        raise MalformedPropertyError(msg, details={"property": name})
    return list(items)


@dataclass
class ChecklistItem:
    state: str | None = None
    updated_at: int | None = None
    updated_by: str | None = None
    _raw: dict[str, Any] = field(default_factory=dict, repr=False)
    _dirty: bool = field(default=False, repr=False)

    @classmethod
    def from_dict(cls, raw: Any, name: str) -> ChecklistItem:
        data = _expect_dict(raw, name)
        return cls(
            state=data.get("state"),
            updated_at=data.get("updated_at"),
            updated_by=data.get("updated_by"),
            _raw=dict(data),
        )

    def set_state(self, state: str | None, *, at: int, by: str) -> None:
        self.state = state
        self.updated_at = at
        self.updated_by = by
        self._dirty = True

    def to_dict(self) -> dict[str, Any]:
        out = copy.deepcopy(self._raw)
        if self._dirty:
            out["state"] = self.state
            out["updated_at"] = self.updated_at
            out["updated_by"] = self.updated_by
        return out


@dataclass
class Checklist:
    state: str | None = None
    updated_at: int | None = None
    updated_by: str | None = None
    items: list[ChecklistItem] = field(default_factory=list)
    _raw: dict[str, Any] = field(default_factory=dict, repr=False)
    _dirty: bool = field(default=False, repr=False)

    @classmethod
    def from_dict(cls, raw: Any, name: str) -> Checklist:
        data = _expect_dict(raw, name)
        raw_items = data.get("items")
        items: list[ChecklistItem] = []
        if raw_items is not None:
            items = [
                ChecklistItem.from_dict(item, f"{name}.items[{i}]")
                for i, item in enumerate(_expect_list(raw_items, f"{name}.items"))
            ]
        return cls(
            state=data.get("state"),
            updated_at=data.get("updated_at"),
            updated_by=data.get("updated_by"),
            items=items,
            _raw=dict(data),
        )

    def set_state(self, state: str | None, *, at: int, by: str) -> None:
        self.state = state
        self.updated_at = at
        self.updated_by = by
        self._dirty = True

    def to_dict(self) -> dict[str, Any]:
        out = copy.deepcopy(self._raw)
        if self._dirty:
            out["state"] = self.state
            out["updated_at"] = self.updated_at
            out["updated_by"] = self.updated_by
        # a stored "items": null stays null unless an item changed
        if any(item._dirty for item in self.items):
            out["items"] = [item.to_dict() for item in self.items]
        return out


@dataclass
class Stamp:
    """Who moved a record into a state, and when."""

    at: int
    by: str
    by_name: str


@dataclass
class TaskProperties:
    """Structured fields of a plan/task/trouble/issue property bag."""

    status: str = "new"
    creator_id: str = ""
    creator_name: str = ""
    priority: bool | None = None
    assignee_ids: list[str] = field(default_factory=list)
    manager_ids: list[str] = field(default_factory=list)
    checklists: list[Checklist] = field(default_factory=list)
    stamps: dict[str, Stamp] = field(default_factory=dict)
    has_checklists: bool = False
    _raw: dict[str, Any] = field(default_factory=dict, repr=False)
    _dirty_stamps: set[str] = field(default_factory=set, repr=False)

    @classmethod
    def from_props(cls, props: Any) -> TaskProperties:
        data = _expect_dict(props, "props")

        status = data.get("status", "new")
        if not isinstance(status, str):
            msg = f"'status' must be a string, got {type(status).__name__}"
            raise MalformedPropertyError(msg, details={"property": "status"})

        priority = data.get("priority")
        if priority is not None and not isinstance(priority, bool):
            msg = f"'priority' must be a boolean, got {type(priority).__name__}"
            raise MalformedPropertyError(msg, details={"property": "priority"})

        checklists: list[Checklist] = []
        has_checklists = "checklists" in data and data["checklists"] is not None
        if has_checklists:
            checklists = [
                Checklist.from_dict(c, f"checklists[{i}]")
                for i, c in enumerate(_expect_list(data["checklists"], "checklists"))
            ]

        stamps: dict[str, Stamp] = {}
        for name in STAMP_NAMES:
            at = data.get(f"{name}_at")
            if at is None:
                continue
            stamps[name] = Stamp(at=at, by=data.get(f"{name}_by", ""), by_name=data.get(f"{name}_by_name", ""))

        return cls(
            status=status,
            creator_id=str(data.get("creator_id", "")),
            creator_name=str(data.get("creator_name", "")),
            priority=priority,
            assignee_ids=_expect_str_list(data.get("assignee_ids", []) or [], "assignee_ids"),
            manager_ids=_expect_str_list(data.get("manager_ids", []) or [], "manager_ids"),
            checklists=checklists,
            stamps=stamps,
            has_checklists=has_checklists,
            _raw=copy.deepcopy(data),
        )

    def stamp(self, name: str, *, at: int, by: str, by_name: str) -> None:
        self.stamps[name] = Stamp(at=at, by=by, by_name=by_name)
        self._dirty_stamps.add(name)

    def to_props(self) -> dict[str, Any]:
        """Overlay the structured fields onto a copy of the original bag."""
        out = copy.deepcopy(self._raw)
        out["status"] = self.status
        if self.priority is not None:
            out["priority"] = self.priority
        for name in sorted(self._dirty_stamps):
            st = self.stamps[name]
            out[f"{name}_at"] = st.at
            out[f"{name}_by"] = st.by
            out[f"{name}_by_name"] = st.by_name
        if self.has_checklists or self.checklists:
            out["checklists"] = [c.to_dict() for c in self.checklists]
        return out
