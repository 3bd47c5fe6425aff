"""Shared helpers and constants for API route modules."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    from fastapi.responses import JSONResponse
    from starlette.requests import Request

from workpost.core import Post, User, WorkpostDB
from workpost.errors import NotFoundError, WorkpostError
from workpost.types.api import ErrorResponse
from workpost.validation import sanitize_user_id, validate_state
from workpost.visibility import DEFAULT_PER_PAGE, MAX_PER_PAGE

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SESSION_HEADER = "X-User-Id"
STATUS_PARAM = "status[]"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _error_response(
    message: str,
    code: str,
    status_code: int,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Return a structured error response and log the error."""
    from fastapi.responses import JSONResponse

    logger.warning("API error [%s] %s: %s", status_code, code, message)
    envelope: ErrorResponse = {"error": {"message": message, "code": code, "details": details or {}}}
    return JSONResponse(envelope, status_code=status_code)


def _workpost_error(exc: WorkpostError) -> JSONResponse:
    """Translate a domain error into the error envelope."""
    return _error_response(exc.message, exc.code, exc.status_code, exc.details)


async def _parse_json_body(request: Request) -> dict[str, Any] | JSONResponse:
    """Parse and validate a JSON object body, returning 400 on failure."""
    import json

    try:
        body = await request.json()
    except (json.JSONDecodeError, ValueError, UnicodeDecodeError):
        return _error_response("Invalid JSON body", "INVALID_INPUT", 400)
    if not isinstance(body, dict):
        return _error_response("Request body must be a JSON object", "INVALID_INPUT", 400)
    return body


def _safe_int(value: str, name: str, *, min_value: int | None = None, max_value: int | None = None) -> int | JSONResponse:
    """Parse a query-param string to int, returning a 400 error response on failure."""
    try:
        result = int(value)
    except (ValueError, TypeError):
        return _error_response(
            f'Invalid value for {name}: "{value}". Must be an integer.',
            "INVALID_INPUT",
            400,
            {"param": name, "value": value},
        )
    if min_value is not None and result < min_value:
        return _error_response(
            f"Invalid value for {name}: {result}. Must be >= {min_value}.",
            "INVALID_INPUT",
            400,
            {"param": name, "value": value},
        )
    if max_value is not None and result > max_value:
        return _error_response(
            f"Invalid value for {name}: {result}. Must be <= {max_value}.",
            "INVALID_INPUT",
            400,
            {"param": name, "value": value},
        )
    return result


def _parse_pagination(params: Mapping[str, str]) -> tuple[int, int] | JSONResponse:
    """Extract ``page`` and ``per_page`` from query params with validation.

    Returns ``(page, per_page)`` on success or a 400 ``JSONResponse`` on error.
    """
    page = _safe_int(params.get("page", "0"), "page", min_value=0)
    if not isinstance(page, int):
        return page
    per_page = _safe_int(params.get("per_page", str(DEFAULT_PER_PAGE)), "per_page", min_value=1, max_value=MAX_PER_PAGE)
    if not isinstance(per_page, int):
        return per_page
    return page, per_page


def _session_user(request: Request, db: WorkpostDB) -> User | JSONResponse:
    """Resolve the requesting user from the session header, or a 401."""
    raw = request.headers.get(SESSION_HEADER)
    if raw is None:
        return _error_response(f"Missing {SESSION_HEADER} header", "UNAUTHENTICATED", 401)
    user_id, err = sanitize_user_id(raw)
    if err:
        return _error_response(err, "UNAUTHENTICATED", 401)
    try:
        return db.get_user(user_id)
    except NotFoundError:
        return _error_response(f"Unknown session user: {user_id}", "UNAUTHENTICATED", 401)
    except WorkpostError as exc:
        return _workpost_error(exc)


def _validate_state(body: dict[str, Any]) -> tuple[str | None, JSONResponse | None]:
    """Read ``state`` from a checklist patch body.

    Returns (state, None) on success or (None, JSONResponse) on error.
    """
    if "state" not in body:
        return (None, _error_response("state is required (use null to clear)", "INVALID_INPUT", 400, {"field": "state"}))
    state, err = validate_state(body["state"])
    if err:
        return (None, _error_response(err, "INVALID_INPUT", 400, {"field": "state"}))
    return (state, None)


def _checklists_response(post: Post) -> JSONResponse:
    from fastapi.responses import JSONResponse

    from workpost.checklists import checklists_of

    return JSONResponse(checklists_of(post))


# ---------------------------------------------------------------------------
# Record creation (shared by /plans, /tasks, /troubles, /issues)
# ---------------------------------------------------------------------------


def _parse_create_body(body: dict[str, Any]) -> dict[str, Any] | JSONResponse:
    channel_id = body.get("channel_id")
    if not isinstance(channel_id, str) or not channel_id.strip():
        return _error_response("channel_id is required", "INVALID_INPUT", 400, {"field": "channel_id"})
    message = body.get("message", "")
    if not isinstance(message, str):
        return _error_response("message must be a string", "INVALID_INPUT", 400, {"field": "message"})
    props = body.get("props")
    if props is not None and not isinstance(props, dict):
        return _error_response("props must be an object", "INVALID_INPUT", 400, {"field": "props"})
    file_ids = body.get("file_ids") or []
    if not isinstance(file_ids, list) or not all(isinstance(f, str) for f in file_ids):
        return _error_response("file_ids must be a list of strings", "INVALID_INPUT", 400, {"field": "file_ids"})
    create_at = body.get("create_at") or None
    if create_at is not None and (not isinstance(create_at, int) or isinstance(create_at, bool) or create_at < 0):
        return _error_response("create_at must be a non-negative integer", "INVALID_INPUT", 400, {"field": "create_at"})
    return {
        "channel_id": channel_id.strip(),
        "message": message,
        "props": props,
        "file_ids": file_ids,
        "create_at": create_at,
    }


async def _create_record(kind: str, request: Request, db: WorkpostDB) -> JSONResponse:
    from fastapi.responses import JSONResponse

    user = _session_user(request, db)
    if not isinstance(user, User):
        return user
    body = await _parse_json_body(request)
    if not isinstance(body, dict):
        return body
    fields = _parse_create_body(body)
    if not isinstance(fields, dict):
        return fields
    try:
        post = db.create_record(kind, requester=user, **fields)
    except WorkpostError as exc:
        return _workpost_error(exc)
    return JSONResponse(post.to_dict(), status_code=201)
