"""CLI for workpost.

Convention-based: discovers .workpost/ by walking up from cwd.

Usage:
    workpost init                                     # Initialize .workpost/ in cwd
    workpost init --suffix=-ops --locale=en           # Custom workflow suffix / locale
    workpost add-user alice --first-name Alice        # Register a platform user
    workpost add-team ops                             # Register a team
    workpost add-channel ops-ky-thuat --type G -m ID  # Register a channel with members
    workpost serve --port 9000                        # Run the HTTP API
    workpost my-tasks --user ID --status new          # List visible tasks
    workpost my-tasks --user ID --type trouble --count
    workpost update-task <id> --user ID --status confirmed
"""

from __future__ import annotations

import json as json_mod
import sys
from pathlib import Path
from typing import NoReturn

import click

from workpost import __version__
from workpost.api import DEFAULT_PORT
from workpost.core import (
    DB_FILENAME,
    WORKPOST_DIR_NAME,
    WorkpostDB,
    default_config,
    find_workpost_root,
    read_config,
    write_config,
)
from workpost.db_tasks import to_post_list
from workpost.errors import WorkpostError
from workpost.messages import SUPPORTED_LOCALES
from workpost.properties import STATUSES
from workpost.visibility import parse_my_tasks_type


def _get_db() -> WorkpostDB:
    """Discover .workpost/ and return an initialized WorkpostDB."""
    try:
        find_workpost_root()
    except FileNotFoundError:
        click.echo(f"No {WORKPOST_DIR_NAME}/ found. Run 'workpost init' first.", err=True)
        sys.exit(1)
    return WorkpostDB.from_project()


def _fail(message: str, as_json: bool) -> NoReturn:
    if as_json:
        click.echo(json_mod.dumps({"error": message}, ensure_ascii=False))
    else:
        click.echo(f"Error: {message}", err=True)
    sys.exit(1)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="workpost")
def cli() -> None:
    """workpost: plans, tasks and troubles on top of chat posts."""


@cli.command()
@click.option("--suffix", default=None, help="Workflow channel suffix (default: -ky-thuat)")
@click.option("--locale", type=click.Choice(sorted(SUPPORTED_LOCALES)), default=None, help="Notification locale")
def init(suffix: str | None, locale: str | None) -> None:
    """Initialize .workpost/ in the current directory."""
    cwd = Path.cwd()
    workpost_dir = cwd / WORKPOST_DIR_NAME

    if workpost_dir.exists():
        click.echo(f"{WORKPOST_DIR_NAME}/ already exists in {cwd}")
        # Still ensure DB is initialized
        WorkpostDB.from_project(cwd).close()
        return

    workpost_dir.mkdir()
    config = default_config()
    if suffix:
        config["workflow_channel_suffix"] = suffix
    if locale:
        config["locale"] = locale
    write_config(workpost_dir, config)

    db = WorkpostDB.from_project(cwd)
    db.close()

    click.echo(f"Initialized {WORKPOST_DIR_NAME}/ in {cwd}")
    click.echo(f"  Workflow suffix: {config['workflow_channel_suffix']}")
    click.echo(f"  Locale: {config['locale']}")
    click.echo(f"  Database: {workpost_dir / DB_FILENAME}")


@cli.command("add-user")
@click.argument("username")
@click.option("--first-name", default="", help="First name")
@click.option("--last-name", default="", help="Last name")
@click.option("--nickname", default="", help="Nickname (shown in notifications when set)")
@click.option("--admin", is_flag=True, help="Grant the system_admin role")
@click.option("--id", "user_id", default=None, help="Explicit user id (default: generated)")
def add_user(username: str, first_name: str, last_name: str, nickname: str, admin: bool, user_id: str | None) -> None:
    """Register a platform user."""
    roles = "system_user system_admin" if admin else "system_user"
    with _get_db() as db:
        try:
            user = db.create_user(
                username, first_name=first_name, last_name=last_name, nickname=nickname, roles=roles, user_id=user_id
            )
        except WorkpostError as e:
            _fail(str(e), False)
        click.echo(f"Created user {user.id} ({user.username})")


@cli.command("add-team")
@click.argument("name")
@click.option("--display-name", default="", help="Display name")
@click.option("--member", "-m", "members", multiple=True, help="User id to add (repeatable)")
def add_team(name: str, display_name: str, members: tuple[str, ...]) -> None:
    """Register a team."""
    with _get_db() as db:
        try:
            team = db.create_team(name, display_name=display_name)
            for user_id in members:
                db.add_team_member(team.id, user_id)
        except WorkpostError as e:
            _fail(str(e), False)
        click.echo(f"Created team {team.id} ({team.name}) with {len(members)} member(s)")


@cli.command("add-channel")
@click.argument("name")
@click.option("--team", "team_id", default="", help="Owning team id")
@click.option("--display-name", default="", help="Display name")
@click.option("--type", "channel_type", type=click.Choice(["O", "P", "G", "D"]), default="O", help="Channel type")
@click.option("--member", "-m", "members", multiple=True, help="User id to add (repeatable)")
def add_channel(name: str, team_id: str, display_name: str, channel_type: str, members: tuple[str, ...]) -> None:
    """Register a channel."""
    with _get_db() as db:
        try:
            channel = db.create_channel(name, team_id=team_id, display_name=display_name, type=channel_type)
            for user_id in members:
                db.add_channel_member(channel.id, user_id)
        except WorkpostError as e:
            _fail(str(e), False)
        workflow = " [workflow]" if db.channel_policy.allows(channel) else ""
        click.echo(f"Created channel {channel.id} ({channel.name}){workflow}")


@cli.command()
@click.option("--port", default=DEFAULT_PORT, type=int, help=f"Server port (default {DEFAULT_PORT})")
def serve(port: int) -> None:
    """Run the HTTP API on 127.0.0.1."""
    try:
        find_workpost_root()
    except FileNotFoundError:
        click.echo(f"No {WORKPOST_DIR_NAME}/ found. Run 'workpost init' first.", err=True)
        sys.exit(1)
    from workpost.api import main as api_main

    api_main(port=port)


@cli.command("my-tasks")
@click.option("--user", "user_id", required=True, help="Requesting user id")
@click.option("--type", "type_", default=None, help="trouble|issue|plan or from_me|to_me|is_manager")
@click.option(
    "--status",
    "statuses",
    multiple=True,
    type=click.Choice(list(STATUSES)),
    help="Status filter (repeatable; default new+confirmed)",
)
@click.option("--page", default=0, type=click.IntRange(min=0), help="Page number")
@click.option("--per-page", default=60, type=click.IntRange(1, 200), help="Page size")
@click.option("--count", "count_only", is_flag=True, help="Print only the count")
def my_tasks(
    user_id: str,
    type_: str | None,
    statuses: tuple[str, ...],
    page: int,
    per_page: int,
    count_only: bool,
) -> None:
    """List records visible to a user, as JSON."""
    kind, mode = parse_my_tasks_type(type_)
    wanted = list(statuses) or ["new", "confirmed"]
    with _get_db() as db:
        try:
            db.get_user(user_id)
            if count_only:
                click.echo(json_mod.dumps({"count": db.count_my_tasks(user_id, kind=kind, mode=mode, statuses=wanted)}))
                return
            posts = db.get_my_tasks(user_id, kind=kind, mode=mode, statuses=wanted, page=page, per_page=per_page)
        except WorkpostError as e:
            _fail(str(e), True)
        click.echo(json_mod.dumps(to_post_list(posts), indent=2, ensure_ascii=False))


@cli.command("update-task")
@click.argument("post_id")
@click.option("--user", "user_id", required=True, help="Acting user id")
@click.option("--status", default=None, type=click.Choice(list(STATUSES)), help="New status")
@click.option("--priority/--no-priority", default=None, help="Request or drop priority")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def update_task(post_id: str, user_id: str, status: str | None, priority: bool | None, as_json: bool) -> None:
    """Apply a status and/or priority change to a record."""
    with _get_db() as db:
        try:
            actor = db.get_user(user_id)
            change = db.update_task(post_id, actor=actor, status=status, priority=priority)
        except WorkpostError as e:
            _fail(str(e), as_json)
        if as_json:
            click.echo(json_mod.dumps(change.post.to_dict(), indent=2, ensure_ascii=False))
        elif not change.changed:
            click.echo(f"No change to {post_id}")
        else:
            click.echo(f"Updated {post_id}: {change.old_status} -> {change.new_status}")
            if change.notification is not None:
                click.echo(change.notification.message)


@cli.command("show-config")
def show_config() -> None:
    """Print the effective project configuration."""
    try:
        workpost_dir = find_workpost_root()
    except FileNotFoundError:
        click.echo(f"No {WORKPOST_DIR_NAME}/ found. Run 'workpost init' first.", err=True)
        sys.exit(1)
    click.echo(json_mod.dumps(read_config(workpost_dir), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    cli()
