"""Structural interface for algebra engines.

The processing layer only needs these operations, so any object that
provides them can stand in for :class:`~numerals.engine.MathEngine`.
"""

from __future__ import annotations

from collections.abc import MutableMapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class AlgebraEngine(Protocol):
    """Evaluates expressions, adds values, and formats them for display."""

    def evaluate(self, text: str, scope: MutableMapping[str, Any]) -> Any: ...

    def add(self, *values: Any) -> Any: ...

    def format(self, value: Any, number_format: Any = None) -> str: ...

    def is_quantity(self, value: Any) -> bool: ...

    def magnitude(self, value: Any) -> Any: ...
