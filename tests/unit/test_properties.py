"""Tests for the typed property-bag view."""

from __future__ import annotations

from typing import Any

import pytest

from workpost.errors import MalformedPropertyError
from workpost.properties import TaskProperties


class TestFromProps:
    def test_reads_structured_fields(self) -> None:
        props = TaskProperties.from_props(
            {
                "status": "confirmed",
                "creator_id": "u1",
                "creator_name": "Ann",
                "priority": True,
                "assignee_ids": ["u2"],
                "manager_ids": ["u3", "u4"],
                "confirmed_at": 5,
                "confirmed_by": "u2",
                "confirmed_by_name": "Bo",
            }
        )
        assert props.status == "confirmed"
        assert props.creator_id == "u1"
        assert props.priority is True
        assert props.assignee_ids == ["u2"]
        assert props.manager_ids == ["u3", "u4"]
        assert props.stamps["confirmed"].by_name == "Bo"

    def test_defaults(self) -> None:
        props = TaskProperties.from_props({})
        assert props.status == "new"
        assert props.priority is None
        assert props.assignee_ids == []
        assert props.checklists == []

    def test_null_id_lists_read_as_empty(self) -> None:
        props = TaskProperties.from_props({"assignee_ids": None, "manager_ids": None})
        assert props.assignee_ids == []
        assert props.manager_ids == []

    @pytest.mark.parametrize(
        "bag",
        [
            [],
            {"status": 3},
            {"priority": "yes"},
            {"assignee_ids": "u1"},
            {"manager_ids": [1, 2]},
            {"checklists": {}},
            {"checklists": [1]},
            {"checklists": [{"items": [None]}]},
        ],
    )
    def test_malformed(self, bag: Any) -> None:
        with pytest.raises(MalformedPropertyError):
            TaskProperties.from_props(bag)


class TestToProps:
    def test_round_trip_is_identity(self) -> None:
        bag = {
            "title": "T",
            "status": "new",
            "start_date": "2024-01-01",
            "checklists": [{"name": "A", "state": "x", "items": [{"name": "i", "state": None}]}],
            "customer_name": "ACME",
        }
        out = TaskProperties.from_props(bag).to_props()
        assert out == bag
        assert list(out) == list(bag)

    def test_stamp_only_writes_touched_stamps(self) -> None:
        props = TaskProperties.from_props({"status": "new", "confirmed_at": 1, "confirmed_by": "a"})
        props.stamp("done", at=9, by="b", by_name="Bee")
        out = props.to_props()
        assert out["done_at"] == 9
        assert out["done_by_name"] == "Bee"
        assert out["confirmed_at"] == 1
        assert "confirmed_by_name" not in out

    def test_does_not_alias_input(self) -> None:
        bag: dict[str, Any] = {"status": "new", "extra": {"nested": [1]}}
        out = TaskProperties.from_props(bag).to_props()
        out["extra"]["nested"].append(2)
        assert bag["extra"]["nested"] == [1]
