# IMPORT CONSTRAINT: types/ modules must only import from typing, stdlib, and each other.
# NEVER import from core.py, db_base.py, or any mixin; this prevents circular imports.
"""Typed return-value contracts for workpost core and API layers."""

from __future__ import annotations

from workpost.types.api import (
    ChannelTaskStats,
    CountResponse,
    ErrorBody,
    ErrorResponse,
    MyTaskStats,
    PostList,
    StatusCounts,
)
from workpost.types.core import ChannelDict, EpochMillis, PostDict, UserDict

__all__ = [
    "ChannelDict",
    "ChannelTaskStats",
    "CountResponse",
    "EpochMillis",
    "ErrorBody",
    "ErrorResponse",
    "MyTaskStats",
    "PostDict",
    "PostList",
    "StatusCounts",
    "UserDict",
]
