"""The requester's own task views: ``/users/me/tasks``."""

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
from workpost.visibility import parse_my_tasks_type, validate_statuses


def create_router() -> APIRouter:
    """Build the APIRouter for the "my tasks" endpoints.

    ``type`` is overloaded: a kind (trouble, issue, plan) or a relationship
    mode over tasks (from_me, to_me, is_manager). Anything else lists tasks
    in default mode. Filters are checked before the session user is resolved.
    """
    from fastapi import APIRouter, Depends

    from workpost.api import _get_db

    router = APIRouter()

    @router.get("/users/me/tasks")
    async def api_my_tasks(request: Request, db: WorkpostDB = Depends(_get_db)) -> JSONResponse:
        paging = _parse_pagination(request.query_params)
        if not isinstance(paging, tuple):
            return paging
        page, per_page = paging
        kind, mode = parse_my_tasks_type(request.query_params.get("type"))
        try:
            statuses = list(validate_statuses(request.query_params.getlist(STATUS_PARAM)))
        except WorkpostError as exc:
            return _workpost_error(exc)
        user = _session_user(request, db)
        if not isinstance(user, User):
            return user
        try:
            posts = db.get_my_tasks(user.id, kind=kind, mode=mode, statuses=statuses, page=page, per_page=per_page)
        except WorkpostError as exc:
            return _workpost_error(exc)
        return JSONResponse(to_post_list(posts))

    @router.get("/users/me/tasks/count")
    async def api_my_tasks_count(request: Request, db: WorkpostDB = Depends(_get_db)) -> JSONResponse:
        kind, mode = parse_my_tasks_type(request.query_params.get("type"))
        try:
            statuses = list(validate_statuses(request.query_params.getlist(STATUS_PARAM)))
        except WorkpostError as exc:
            return _workpost_error(exc)
        user = _session_user(request, db)
        if not isinstance(user, User):
            return user
        try:
            count = db.count_my_tasks(user.id, kind=kind, mode=mode, statuses=statuses)
        except WorkpostError as exc:
            return _workpost_error(exc)
        return JSONResponse(CountResponse(count=count))

    @router.get("/users/me/tasks/channels")
    async def api_my_task_channels(request: Request, db: WorkpostDB = Depends(_get_db)) -> JSONResponse:
        """Workflow group channels the requester can reach, ordered by id."""
        user = _session_user(request, db)
        if not isinstance(user, User):
            return user
        try:
            channels = db.get_my_task_channels(user.id)
        except WorkpostError as exc:
            return _workpost_error(exc)
        return JSONResponse([c.to_dict() for c in channels])

    @router.get("/users/me/tasks/stats")
    async def api_my_task_stats(request: Request, db: WorkpostDB = Depends(_get_db)) -> JSONResponse:
        user = _session_user(request, db)
        if not isinstance(user, User):
            return user
        try:
            stats = db.my_task_stats(user.id)
        except WorkpostError as exc:
            return _workpost_error(exc)
        return JSONResponse(stats)

    @router.get("/users/me/tasks/technical_stats")
    async def api_technical_stats(request: Request, db: WorkpostDB = Depends(_get_db)) -> JSONResponse:
        user = _session_user(request, db)
        if not isinstance(user, User):
            return user
        try:
            stats = db.technical_stats(user.id)
        except WorkpostError as exc:
            return _workpost_error(exc)
        return JSONResponse(stats)

    return router
