"""Constants and functions available to every expression.

Functions accept plain numbers and pint quantities alike; those that only
make sense on a magnitude (``floor``, ``round``...) keep the units.
"""

from __future__ import annotations

import math
import operator
from functools import reduce


def _on_magnitude(func):
    """Wrap *func* so it maps over a quantity's magnitude, keeping units."""

    def wrapper(value, *args):
        magnitude = getattr(value, "magnitude", None)
        if magnitude is None:
            return func(value, *args)
        return func(magnitude, *args) * value.units

    wrapper.__name__ = func.__name__
    return wrapper


def _sqrt(value: object) -> object:
    return value ** 0.5


def _cbrt(value: object) -> object:
    if not hasattr(value, "magnitude") and value < 0:
        return -((-value) ** (1 / 3))
    return value ** (1 / 3)


def _log(value: object, base: object = None) -> float:
    if base is None:
        return math.log(value)
    return math.log(value, base)


def _round(value: float, digits: int = 0) -> float:
    result = round(value, int(digits))
    return int(result) if digits == 0 else result


def _sum(*values: object) -> object:
    if not values:
        raise ValueError("sum requires at least one value")
    return reduce(operator.add, values)


def _mean(*values: object) -> object:
    return _sum(*values) / len(values)


def _number(value: object, unit: object = None) -> float:
    """Strip units, optionally converting to *unit* first."""
    if unit is not None:
        value = value.to(unit.units)
    return getattr(value, "magnitude", value)


def _sign(value: object) -> int:
    value = getattr(value, "magnitude", value)
    return (value > 0) - (value < 0)


CONSTANTS: dict[str, object] = {
    "pi": math.pi,
    "PI": math.pi,
    "e": math.e,
    "E": math.e,
    "tau": math.tau,
    "phi": (1 + math.sqrt(5)) / 2,
    "inf": math.inf,
    "Infinity": math.inf,
    "NaN": math.nan,
    "true": True,
    "false": False,
}

FUNCTIONS: dict[str, object] = {
    "abs": abs,
    "sqrt": _sqrt,
    "cbrt": _cbrt,
    "exp": math.exp,
    "log": _log,
    "ln": math.log,
    "log10": math.log10,
    "log2": math.log2,
    "pow": pow,
    "mod": operator.mod,
    "round": _on_magnitude(_round),
    "floor": _on_magnitude(math.floor),
    "ceil": _on_magnitude(math.ceil),
    "fix": _on_magnitude(math.trunc),
    "sign": _sign,
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "asin": math.asin,
    "acos": math.acos,
    "atan": math.atan,
    "atan2": math.atan2,
    "sinh": math.sinh,
    "cosh": math.cosh,
    "tanh": math.tanh,
    "hypot": math.hypot,
    "factorial": math.factorial,
    "gcd": math.gcd,
    "lcm": math.lcm,
    "min": min,
    "max": max,
    "sum": _sum,
    "add": _sum,
    "mean": _mean,
    "number": _number,
}
