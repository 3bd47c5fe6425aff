"""Plan route handlers."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi.responses import JSONResponse
from starlette.requests import Request

if TYPE_CHECKING:
    from fastapi import APIRouter

from workpost.api_routes.common import (
    _checklists_response,
    _create_record,
    _parse_json_body,
    _session_user,
    _validate_state,
    _workpost_error,
)
from workpost.core import User, WorkpostDB
from workpost.errors import WorkpostError


def create_router() -> APIRouter:
    """Build the APIRouter for plan endpoints.

    NOTE: All handlers are intentionally async despite doing synchronous
    SQLite I/O. This serializes DB access on the event loop thread,
    avoiding concurrent multi-thread access to the shared DB connection.
    """
    from fastapi import APIRouter, Depends

    from workpost.api import _get_db

    router = APIRouter()

    @router.post("/plans")
    async def api_create_plan(request: Request, db: WorkpostDB = Depends(_get_db)) -> JSONResponse:
        return await _create_record("plan", request, db)

    @router.patch("/plans/{post_id}/checklists/{checklist_idx:int}")
    async def api_update_checklist(
        post_id: str,
        checklist_idx: int,
        request: Request,
        db: WorkpostDB = Depends(_get_db),
    ) -> JSONResponse:
        """Set one checklist's state; returns the full ``checklists`` value."""
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
            post = db.set_checklist_state(post_id, checklist_idx, state, actor=user)
        except WorkpostError as exc:
            return _workpost_error(exc)
        return _checklists_response(post)

    return router
