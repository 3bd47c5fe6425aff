"""Trouble and issue creation handlers."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi.responses import JSONResponse
from starlette.requests import Request

if TYPE_CHECKING:
    from fastapi import APIRouter

from workpost.api_routes.common import _create_record
from workpost.core import WorkpostDB


def create_router() -> APIRouter:
    from fastapi import APIRouter, Depends

    from workpost.api import _get_db

    router = APIRouter()

    @router.post("/troubles")
    async def api_create_trouble(request: Request, db: WorkpostDB = Depends(_get_db)) -> JSONResponse:
        return await _create_record("trouble", request, db)

    @router.post("/issues")
    async def api_create_issue(request: Request, db: WorkpostDB = Depends(_get_db)) -> JSONResponse:
        return await _create_record("issue", request, db)

    return router
