"""Shared validation functions for all entry points.

Pure functions: no FastAPI or Click dependencies.
"""

from __future__ import annotations

import unicodedata
from typing import Any

_MAX_USER_ID_LENGTH = 64
_MAX_STATE_LENGTH = 64


def _control_char(value: str) -> str | None:
    for ch in value:
        if unicodedata.category(ch).startswith("C"):  # Cc (control) and Cf (format)
            return f"U+{ord(ch):04X}"
    return None


def sanitize_user_id(value: Any) -> tuple[str, str | None]:
    """Validate and clean a session user id.

    Returns (cleaned_id, None) on success or ("", error_message) on failure.
    """
    if not isinstance(value, str):
        return ("", "user id must be a string")
    found = _control_char(value)
    if found:
        return ("", f"user id must not contain control characters (found {found})")
    cleaned = value.strip()
    if not cleaned:
        return ("", "user id must not be empty")
    if len(cleaned) > _MAX_USER_ID_LENGTH:
        return ("", f"user id must be at most {_MAX_USER_ID_LENGTH} characters")
    return (cleaned, None)


def validate_state(value: Any) -> tuple[str | None, str | None]:
    """Validate a checklist ``state`` value. ``None`` clears the state.

    Returns (state, None) on success or (None, error_message) on failure.
    """
    if value is None:
        return (None, None)
    if not isinstance(value, str):
        return (None, "state must be a string or null")
    if len(value) > _MAX_STATE_LENGTH:
        return (None, f"state must be at most {_MAX_STATE_LENGTH} characters")
    found = _control_char(value)
    if found:
        return (None, f"state must not contain control characters (found {found})")
    return (value, None)
