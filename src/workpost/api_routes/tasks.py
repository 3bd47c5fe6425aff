"""Task route handlers: creation, status/priority transitions, checklist items."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from fastapi.responses import JSONResponse
from starlette.requests import Request

if TYPE_CHECKING:
    from fastapi import APIRouter

from workpost.api_routes.common import (
    _checklists_response,
    _create_record,
    _error_response,
    _parse_json_body,
    _session_user,
    _validate_state,
    _workpost_error,
)
from workpost.core import User, WorkpostDB
from workpost.errors import WorkpostError

logger = logging.getLogger(__name__)


def _parse_task_patch(body: dict[str, Any]) -> tuple[str | None, bool | None] | JSONResponse:
    status = body.get("status")
    if status is not None and not isinstance(status, str):
        return _error_response("status must be a string", "INVALID_INPUT", 400, {"field": "status"})
    priority = body.get("priority")
    if priority is not None and not isinstance(priority, bool):
        return _error_response("priority must be a boolean", "INVALID_INPUT", 400, {"field": "priority"})
    return status, priority


def create_router() -> APIRouter:
    """Build the APIRouter for task endpoints.

    NOTE: All handlers are intentionally async despite doing synchronous
    SQLite I/O. This serializes DB access on the event loop thread,
    avoiding concurrent multi-thread access to the shared DB connection.
    """
    from fastapi import APIRouter, Depends

    from workpost.api import _get_db

    router = APIRouter()

    @router.post("/tasks")
    async def api_create_task(request: Request, db: WorkpostDB = Depends(_get_db)) -> JSONResponse:
        return await _create_record("task", request, db)

    @router.patch("/tasks/{post_id}")
    async def api_update_task(post_id: str, request: Request, db: WorkpostDB = Depends(_get_db)) -> JSONResponse:
        """Status and/or priority change. Works for every record kind."""
        user = _session_user(request, db)
        if not isinstance(user, User):
            return user
        body = await _parse_json_body(request)
        if not isinstance(body, dict):
            return body
        patch = _parse_task_patch(body)
        if not isinstance(patch, tuple):
            return patch
        status, priority = patch
        try:
            change = db.update_task(post_id, actor=user, status=status, priority=priority)
        except WorkpostError as exc:
            return _workpost_error(exc)
        return JSONResponse(change.post.to_dict())

    @router.patch("/tasks/{post_id}/checklists/{checklist_idx:int}/items/{item_idx:int}")
    async def api_update_checklist_item(
        post_id: str,
        checklist_idx: int,
        item_idx: int,
        request: Request,
        db: WorkpostDB = Depends(_get_db),
    ) -> JSONResponse:
        user = _session_user(request, db)
        if not isinstance(user, User):
            return user
        body = await _parse_json_body(request)
        if not isinstance(body, dict):
            return body
        state, err = _validate_state(body)
        if err:
            return err
        try:
            post = db.set_checklist_item_state(post_id, checklist_idx, item_idx, state, actor=user)
        except WorkpostError as exc:
            return _workpost_error(exc)
        return _checklists_response(post)

    return router
