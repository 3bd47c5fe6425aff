"""Foundational TypedDicts for dataclass to_dict() returns."""

from __future__ import annotations

from typing import Any, NewType, TypedDict

EpochMillis = NewType("EpochMillis", int)


class PostDict(TypedDict):
    id: str
    create_at: EpochMillis
    update_at: EpochMillis
    delete_at: EpochMillis
    user_id: str
    channel_id: str
    root_id: str
    type: str
    message: str
    props: dict[str, Any]
    file_ids: list[str]


class UserDict(TypedDict):
    id: str
    username: str
    first_name: str
    last_name: str
    nickname: str
    roles: str


class ChannelDict(TypedDict):
    id: str
    team_id: str
    name: str
    display_name: str
    type: str
    create_at: EpochMillis
    delete_at: EpochMillis
