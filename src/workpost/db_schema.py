"""Database schema definitions for workpost.

The platform tables (users, teams, channels, memberships) are a thin local
model of the host chat platform. ``posts`` holds both workflow records and
notifications; the property bag is JSON in ``props``.
"""

from __future__ import annotations

SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS users (
    id          TEXT PRIMARY KEY,
    username    TEXT NOT NULL UNIQUE,
    first_name  TEXT NOT NULL DEFAULT '',
    last_name   TEXT NOT NULL DEFAULT '',
    nickname    TEXT NOT NULL DEFAULT '',
    roles       TEXT NOT NULL DEFAULT 'system_user',
    create_at   INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS teams (
    id            TEXT PRIMARY KEY,
    name          TEXT NOT NULL UNIQUE,
    display_name  TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS team_members (
    team_id  TEXT NOT NULL REFERENCES teams(id),
    user_id  TEXT NOT NULL REFERENCES users(id),
    PRIMARY KEY (team_id, user_id)
);

CREATE INDEX IF NOT EXISTS idx_team_members_user ON team_members(user_id);

CREATE TABLE IF NOT EXISTS channels (
    id            TEXT PRIMARY KEY,
    team_id       TEXT NOT NULL DEFAULT '',
    name          TEXT NOT NULL,
    display_name  TEXT NOT NULL DEFAULT '',
    type          TEXT NOT NULL DEFAULT 'O',
    create_at     INTEGER NOT NULL DEFAULT 0,
    delete_at     INTEGER NOT NULL DEFAULT 0,

    CHECK (type IN ('O', 'P', 'G', 'D'))
);

CREATE INDEX IF NOT EXISTS idx_channels_name ON channels(name);
CREATE INDEX IF NOT EXISTS idx_channels_type ON channels(type, delete_at);

CREATE TABLE IF NOT EXISTS channel_members (
    channel_id  TEXT NOT NULL REFERENCES channels(id),
    user_id     TEXT NOT NULL REFERENCES users(id),
    PRIMARY KEY (channel_id, user_id)
);

CREATE INDEX IF NOT EXISTS idx_channel_members_user ON channel_members(user_id);

CREATE TABLE IF NOT EXISTS posts (
    id          TEXT PRIMARY KEY,
    channel_id  TEXT NOT NULL REFERENCES channels(id),
    user_id     TEXT NOT NULL,
    root_id     TEXT NOT NULL DEFAULT '',
    type        TEXT NOT NULL DEFAULT '',
    message     TEXT NOT NULL DEFAULT '',
    props       TEXT NOT NULL DEFAULT '{}',
    file_ids    TEXT NOT NULL DEFAULT '[]',
    create_at   INTEGER NOT NULL,
    update_at   INTEGER NOT NULL,
    delete_at   INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_posts_channel ON posts(channel_id, create_at DESC);
CREATE INDEX IF NOT EXISTS idx_posts_type ON posts(type, delete_at, create_at DESC);
CREATE INDEX IF NOT EXISTS idx_posts_root ON posts(root_id);
"""

CURRENT_SCHEMA_VERSION = 1
