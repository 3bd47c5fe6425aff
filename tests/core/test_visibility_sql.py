"""Visibility queries executed against SQLite."""

from __future__ import annotations

from pathlib import Path

import pytest

from workpost.core import WorkpostDB
from workpost.errors import InvalidInputError, PermissionDeniedError
from workpost.visibility import VisibilityMode
from tests._db_factory import World, make_db, make_record

OPEN = ["new", "confirmed"]


def _ids(posts: list) -> list[str]:
    return [p.id for p in posts]


class TestMyTasksRelationships:
    @pytest.fixture
    def tasks(self, db: WorkpostDB, world: World) -> dict[str, str]:
        mine = make_record(db, "task", channel_id=world.general, creator_id=world.alice)
        assigned = make_record(db, "task", channel_id=world.general, creator_id=world.bob, assignee_ids=[world.alice])
        managed = make_record(db, "task", channel_id=world.general, creator_id=world.bob, manager_ids=[world.alice])
        other = make_record(db, "task", channel_id=world.general, creator_id=world.bob, assignee_ids=[world.carol])
        return {"mine": mine.id, "assigned": assigned.id, "managed": managed.id, "other": other.id}

    def test_from_me(self, db: WorkpostDB, world: World, tasks: dict[str, str]) -> None:
        posts = db.get_my_tasks(world.alice, mode=VisibilityMode.FROM_ME, statuses=OPEN)
        assert _ids(posts) == [tasks["mine"]]

    def test_to_me(self, db: WorkpostDB, world: World, tasks: dict[str, str]) -> None:
        posts = db.get_my_tasks(world.alice, mode=VisibilityMode.TO_ME, statuses=OPEN)
        assert _ids(posts) == [tasks["assigned"]]

    def test_is_manager(self, db: WorkpostDB, world: World, tasks: dict[str, str]) -> None:
        posts = db.get_my_tasks(world.alice, mode=VisibilityMode.IS_MANAGER, statuses=OPEN)
        assert _ids(posts) == [tasks["managed"]]

    def test_default_is_union(self, db: WorkpostDB, world: World, tasks: dict[str, str]) -> None:
        posts = db.get_my_tasks(world.alice, statuses=OPEN)
        assert set(_ids(posts)) == {tasks["mine"], tasks["assigned"], tasks["managed"]}
        assert db.count_my_tasks(world.alice, statuses=OPEN) == 3

    def test_status_filter(self, db: WorkpostDB, world: World, tasks: dict[str, str]) -> None:
        db.update_task(tasks["mine"], actor=db.get_user(world.alice), status="done")
        assert db.count_my_tasks(world.alice, statuses=["done"]) == 1
        assert db.count_my_tasks(world.alice, statuses=OPEN) == 2

    def test_deleted_excluded(self, db: WorkpostDB, world: World, tasks: dict[str, str]) -> None:
        db.conn.execute("UPDATE posts SET delete_at = 1 WHERE id = ?", (tasks["mine"],))
        db.conn.commit()
        assert db.count_my_tasks(world.alice, mode=VisibilityMode.FROM_ME, statuses=OPEN) == 0

    def test_other_kinds_not_counted_as_tasks(self, db: WorkpostDB, world: World) -> None:
        make_record(db, "plan", channel_id=world.general, creator_id=world.alice)
        assert db.count_my_tasks(world.alice, statuses=OPEN) == 0

    def test_empty_statuses_rejected(self, db: WorkpostDB, world: World) -> None:
        with pytest.raises(InvalidInputError):
            db.get_my_tasks(world.alice, statuses=[])


class TestMyTasksByChannel:
    def test_channel_member_sees_channel_records(self, db: WorkpostDB, world: World) -> None:
        rec = make_record(db, "trouble", channel_id=world.workflow_channel, creator_id=world.outsider)
        assert _ids(db.get_my_tasks(world.carol, kind="trouble", statuses=OPEN)) == [rec.id]

    def test_team_member_sees_workflow_channel_records(self, db: WorkpostDB, world: World) -> None:
        rec = make_record(db, "issue", channel_id=world.workflow_channel)
        assert _ids(db.get_my_tasks(world.bob, kind="issue", statuses=OPEN)) == [rec.id]

    def test_team_membership_does_not_open_other_channels(self, db: WorkpostDB, world: World) -> None:
        make_record(db, "plan", channel_id=world.general)
        make_record(db, "plan", channel_id=world.misc_channel)
        assert db.count_my_tasks(world.bob, kind="plan", statuses=OPEN) == 0
        assert db.count_my_tasks(world.alice, kind="plan", statuses=OPEN) == 1

    def test_outsider_sees_nothing(self, db: WorkpostDB, world: World) -> None:
        make_record(db, "trouble", channel_id=world.workflow_channel, creator_id=world.outsider)
        assert db.count_my_tasks(world.outsider, kind="trouble", statuses=OPEN) == 0


class TestOrderingAndPaging:
    def test_newest_first_with_paging(self, db: WorkpostDB, world: World) -> None:
        ids = [
            make_record(db, "plan", channel_id=world.general, create_at=1000 + i).id
            for i in range(5)
        ]
        newest_first = list(reversed(ids))
        page0 = db.get_tasks_for_channel(
            world.general, kind="plan", statuses=OPEN, requester_id=world.alice, page=0, per_page=2
        )
        page2 = db.get_tasks_for_channel(
            world.general, kind="plan", statuses=OPEN, requester_id=world.alice, page=2, per_page=2
        )
        assert _ids(page0) == newest_first[:2]
        assert _ids(page2) == newest_first[4:]


class TestChannelListing:
    def test_kind_and_status_filter(self, db: WorkpostDB, world: World) -> None:
        trouble = make_record(db, "trouble", channel_id=world.general)
        make_record(db, "trouble", channel_id=world.general, status="completed")
        make_record(db, "plan", channel_id=world.general)
        make_record(db, "trouble", channel_id=world.workflow_channel)
        posts = db.get_tasks_for_channel(world.general, kind="trouble", statuses=OPEN, requester_id=world.alice)
        assert _ids(posts) == [trouble.id]
        assert db.count_tasks_for_channel(world.general, kind="trouble", statuses=OPEN, requester_id=world.alice) == 1

    def test_team_member_may_read_workflow_channel(self, db: WorkpostDB, world: World) -> None:
        make_record(db, "plan", channel_id=world.workflow_channel)
        assert db.count_tasks_for_channel(world.workflow_channel, kind="plan", statuses=OPEN, requester_id=world.bob) == 1

    def test_non_member_denied(self, db: WorkpostDB, world: World) -> None:
        with pytest.raises(PermissionDeniedError):
            db.get_tasks_for_channel(world.general, kind="plan", statuses=OPEN, requester_id=world.outsider)
        with pytest.raises(PermissionDeniedError):
            db.count_tasks_for_channel(world.workflow_channel, kind="plan", statuses=OPEN, requester_id=world.outsider)

    def test_invalid_filters_rejected_before_permission_check(self, db: WorkpostDB, world: World) -> None:
        with pytest.raises(InvalidInputError):
            db.get_tasks_for_channel(world.general, kind="plan", statuses=[], requester_id=world.outsider)


class TestMyTaskChannels:
    def test_group_workflow_channels_by_id(self, db: WorkpostDB, world: World) -> None:
        db.create_channel("zeta-ky-thuat", type="G", channel_id="ch-aaa-kt")
        db.add_channel_member("ch-aaa-kt", world.alice)
        db.create_channel("open-ky-thuat", type="O", channel_id="ch-open-kt")
        db.add_channel_member("ch-open-kt", world.alice)
        db.add_channel_member(world.archived_channel, world.alice)

        channels = db.get_my_task_channels(world.alice)
        assert [c.id for c in channels] == ["ch-aaa-kt", world.workflow_channel]

    def test_suffix_match_is_case_sensitive(self, db: WorkpostDB, world: World) -> None:
        db.create_channel("ops-KY-THUAT", type="G", channel_id="ch-upper-kt")
        db.add_channel_member("ch-upper-kt", world.alice)

        channels = db.get_my_task_channels(world.alice)
        assert [c.id for c in channels] == [world.workflow_channel]
        assert not db.channel_policy.allows(db.get_channel("ch-upper-kt"))

    def test_suffix_wildcards_are_literal(self, tmp_path: Path) -> None:
        db = make_db(tmp_path, suffix="_kt")
        try:
            alice = db.create_user("alice", user_id="alice")
            db.create_channel("ops_kt", type="G", channel_id="ch-literal")
            db.create_channel("opsXkt", type="G", channel_id="ch-wild")
            db.add_channel_member("ch-literal", alice.id)
            db.add_channel_member("ch-wild", alice.id)
            assert [c.id for c in db.get_my_task_channels(alice.id)] == ["ch-literal"]
        finally:
            db.close()

    def test_channel_member_without_team(self, db: WorkpostDB, world: World) -> None:
        assert [c.id for c in db.get_my_task_channels(world.carol)] == [world.workflow_channel]

    def test_outsider_has_none(self, db: WorkpostDB, world: World) -> None:
        assert db.get_my_task_channels(world.outsider) == []


class TestStats:
    def test_my_task_stats(self, db: WorkpostDB, world: World) -> None:
        make_record(db, "task", channel_id=world.general, creator_id=world.alice)
        make_record(db, "task", channel_id=world.general, creator_id=world.bob, assignee_ids=[world.alice])
        make_record(db, "task", channel_id=world.general, creator_id=world.alice, status="done")
        make_record(db, "task", channel_id=world.general, creator_id=world.bob, manager_ids=[world.alice], status="completed")
        assert db.my_task_stats(world.alice) == {
            "from_me_count": 1,
            "to_me_count": 1,
            "is_manager_count": 0,
            "done_count": 1,
            "completed_count": 1,
        }

    def test_technical_stats(self, db: WorkpostDB, world: World) -> None:
        make_record(db, "trouble", channel_id=world.workflow_channel)
        make_record(db, "trouble", channel_id=world.workflow_channel, status="confirmed")
        make_record(db, "issue", channel_id=world.workflow_channel, status="done")
        make_record(db, "plan", channel_id=world.misc_channel)
        stats = db.technical_stats(world.bob)
        assert stats == {
            "trouble": {"open": 2, "done": 0, "completed": 0},
            "issue": {"open": 0, "done": 1, "completed": 0},
            "plan": {"open": 0, "done": 0, "completed": 0},
        }

    def test_channel_stats(self, db: WorkpostDB, world: World) -> None:
        make_record(db, "plan", channel_id=world.general, status="completed")
        make_record(db, "issue", channel_id=world.general)
        make_record(db, "task", channel_id=world.general)
        stats = db.channel_task_stats(world.general, requester_id=world.alice)
        assert stats["plan"] == {"open": 0, "done": 0, "completed": 1}
        assert stats["issue"] == {"open": 1, "done": 0, "completed": 0}
        assert set(stats) == {"trouble", "issue", "plan"}

    def test_channel_stats_requires_read(self, db: WorkpostDB, world: World) -> None:
        with pytest.raises(PermissionDeniedError):
            db.channel_task_stats(world.general, requester_id=world.outsider)
