"""Frontmatter property classification and resolver output."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class PropertyKind(str, Enum):
    """Closed classification of an external property value."""

    NUMBER = "number"
    QUANTITY = "quantity"
    TEXT = "text"
    LIST = "list"
    FUNCTION = "function"
    STRUCTURED = "structured"


class FrontmatterProcessingWarning(BaseModel):
    """A property that could not be bound. Accumulated, never raised."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    key: str
    raw_value: Any = None
    message: str

    def __str__(self) -> str:
        return f'Frontmatter: "{self.key}": {self.message}'


class ScopeResult(BaseModel):
    """Bindings produced from a property bag plus any warnings."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    # Scope is a dict subclass; typed loosely so pydantic keeps the instance
    scope: Any
    warnings: list[FrontmatterProcessingWarning] = []
