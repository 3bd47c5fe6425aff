"""Channel-scoped task listings, counts and stats."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi.responses import JSONResponse
from starlette.requests import Request

if TYPE_CHECKING:
    from fastapi import APIRouter

from workpost.api_routes.common import STATUS_PARAM, _parse_pagination, _session_user, _workpost_error
from workpost.core import User, WorkpostDB
from workpost.db_tasks import to_post_list
from workpost.errors import WorkpostError
from workpost.types.api import CountResponse
from workpost.visibility import parse_channel_tasks_type, validate_statuses


def create_router() -> APIRouter:
    """Build the APIRouter for ``/channels/{channel_id}/tasks``.

    ``type`` must be trouble, issue or plan and ``status[]`` must carry at
    least one status; both are checked before the session user is resolved.
    """
    from fastapi import APIRouter, Depends

    from workpost.api import _get_db

    router = APIRouter()

    @router.get("/channels/{channel_id}/tasks")
    async def api_channel_tasks(channel_id: str, request: Request, db: WorkpostDB = Depends(_get_db)) -> JSONResponse:
        paging = _parse_pagination(request.query_params)
        if not isinstance(paging, tuple):
            return paging
        page, per_page = paging
        try:
            kind = parse_channel_tasks_type(request.query_params.get("type"))
            statuses = list(validate_statuses(request.query_params.getlist(STATUS_PARAM)))
        except WorkpostError as exc:
            return _workpost_error(exc)
        user = _session_user(request, db)
        if not isinstance(user, User):
            return user
        try:
            posts = db.get_tasks_for_channel(
                channel_id,
                kind=kind,
                statuses=statuses,
                requester_id=user.id,
                page=page,
                per_page=per_page,
            )
        except WorkpostError as exc:
            return _workpost_error(exc)
        return JSONResponse(to_post_list(posts))

    @router.get("/channels/{channel_id}/tasks/count")
    async def api_channel_tasks_count(
        channel_id: str, request: Request, db: WorkpostDB = Depends(_get_db)
    ) -> JSONResponse:
        try:
            kind = parse_channel_tasks_type(request.query_params.get("type"))
            statuses = list(validate_statuses(request.query_params.getlist(STATUS_PARAM)))
        except WorkpostError as exc:
            return _workpost_error(exc)
        user = _session_user(request, db)
        if not isinstance(user, User):
            return user
        try:
            count = db.count_tasks_for_channel(channel_id, kind=kind, statuses=statuses, requester_id=user.id)
        except WorkpostError as exc:
            return _workpost_error(exc)
        return JSONResponse(CountResponse(count=count))

    @router.get("/channels/{channel_id}/tasks/stats")
    async def api_channel_tasks_stats(
        channel_id: str, request: Request, db: WorkpostDB = Depends(_get_db)
    ) -> JSONResponse:
        user = _session_user(request, db)
        if not isinstance(user, User):
            return user
        try:
            stats = db.channel_task_stats(channel_id, requester_id=user.id)
        except WorkpostError as exc:
            return _workpost_error(exc)
        return JSONResponse(stats)

    return router
