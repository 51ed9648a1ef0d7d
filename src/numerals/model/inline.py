"""Inline expression models."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class InlineMode(str, Enum):
    RESULT_ONLY = "result_only"
    EQUATION = "equation"


class InlineExpression(BaseModel):
    """An inline code span recognized by its trigger prefix."""

    mode: InlineMode
    expression: str


class InlineResult(BaseModel):
    """Value of one inline expression.

    *new_globals* holds the persistent (``$``-prefixed) bindings created or
    rebound by the expression, ready to merge into the note cache.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    formatted: str
    raw: Any
    new_globals: dict[str, Any] = {}
