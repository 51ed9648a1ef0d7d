"""numerals algebra engine: units-aware expression evaluation.

Entry point::

    from numerals.engine import default_engine

    engine = default_engine()
    scope = {}
    engine.evaluate("distance = 5 km", scope)
    engine.format(engine.evaluate("distance to m", scope))  # "5000 m"
"""

from __future__ import annotations

from functools import lru_cache

from numerals.errors import EngineError

from ._engine import MathEngine
from ._executor import UserFunction
from ._protocols import AlgebraEngine
from ._source import GLOBAL_PREFIX
from ._values import NumberFormatSpec, format_number, normalize_number


@lru_cache(maxsize=None)
def default_engine() -> MathEngine:
    """Shared engine used when callers don't supply one."""
    return MathEngine()


__all__ = [
    "AlgebraEngine",
    "EngineError",
    "GLOBAL_PREFIX",
    "MathEngine",
    "NumberFormatSpec",
    "UserFunction",
    "default_engine",
    "format_number",
    "normalize_number",
]
