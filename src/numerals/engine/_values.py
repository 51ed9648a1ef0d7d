"""Value helpers for the engine.

Number normalization, error translation, and text formatting of results.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from decimal import Decimal
from numbers import Number

from pint.errors import PintError

from numerals.errors import EngineError
from numerals.model.settings import NumberFormat

DEFAULT_PRECISION = 14
# FIXED prints ints with at least this many digits in exponent form
FIXED_INT_DIGITS = 21

NumberFormatSpec = NumberFormat | int | Callable[[object], str] | None


@contextmanager
def engine_errors() -> Iterator[None]:
    """Re-raise arithmetic, type and unit failures as :class:`EngineError`."""
    try:
        yield
    except EngineError:
        raise
    except RecursionError as exc:
        raise EngineError("Maximum recursion depth exceeded") from exc
    except MemoryError as exc:
        raise EngineError("Expression too large to evaluate") from exc
    except (ArithmeticError, TypeError, ValueError, PintError) as exc:
        raise EngineError(str(exc) or type(exc).__name__) from exc


def normalize_number(value: object) -> int | float:
    """Coerce any real number (e.g. ``Decimal``, numpy scalars) to int/float."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, Number):
        as_float = float(value)
        if as_float.is_integer() and not isinstance(value, float):
            return int(as_float)
        return as_float
    raise TypeError(f"Expected a number, got {type(value).__name__}")


# ---------------------------------------------------------------------------
# Number formatting
# ---------------------------------------------------------------------------

def _trim_zeros(text: str) -> str:
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _clean_exponent(text: str) -> str:
    """``1.5e+03`` -> ``1.5e+3``."""
    mantissa, sep, exponent = text.partition("e")
    if not sep:
        return text
    sign = exponent[0] if exponent[0] in "+-" else "+"
    digits = exponent.lstrip("+-").lstrip("0") or "0"
    return f"{_trim_zeros(mantissa)}e{sign}{digits}"


def _format_precision(value: int | float, precision: int) -> str:
    if isinstance(value, int):
        if abs(value) < 10 ** precision:
            return str(value)
        # Decimal formats an int of any size without a str() conversion
        return _clean_exponent(f"{Decimal(value):.{precision}g}")
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    return _clean_exponent(f"{value:.{precision}g}")


def _format_engineering(value: int | float) -> str:
    if value == 0:
        return "0e+0"
    exponent = int(math.floor(math.log10(abs(value)) / 3) * 3)
    mantissa = value / 10 ** exponent
    sign = "+" if exponent >= 0 else "-"
    return f"{_format_precision(float(mantissa), DEFAULT_PRECISION)}e{sign}{abs(exponent)}"


def _group_digits(digits: str, separator: str, indian: bool = False) -> str:
    if indian and len(digits) > 3:
        head, tail = digits[:-3], digits[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        return separator.join(groups + [tail])
    groups = []
    while len(digits) > 3:
        groups.insert(0, digits[-3:])
        digits = digits[:-3]
    groups.insert(0, digits)
    return separator.join(groups)


_LOCALE_SEPARATORS: dict[NumberFormat, tuple[str, str]] = {
    NumberFormat.COMMA_THOUSANDS_PERIOD_DECIMAL: (",", "."),
    NumberFormat.PERIOD_THOUSANDS_COMMA_DECIMAL: (".", ","),
    NumberFormat.SPACE_THOUSANDS_COMMA_DECIMAL: (" ", ","),
    NumberFormat.INDIAN: (",", "."),
}


def _format_grouped(value: int | float, number_format: NumberFormat) -> str:
    thousands, decimal = _LOCALE_SEPARATORS[number_format]
    text = _format_precision(value, DEFAULT_PRECISION)
    if "e" in text or not text.lstrip("-")[:1].isdigit():
        return text
    sign = "-" if text.startswith("-") else ""
    int_part, _, frac_part = text.lstrip("-").partition(".")
    grouped = _group_digits(int_part, thousands, indian=number_format is NumberFormat.INDIAN)
    return f"{sign}{grouped}{decimal + frac_part if frac_part else ''}"


def format_number(value: int | float, number_format: NumberFormatSpec = None) -> str:
    """Format a plain number according to *number_format*.

    ``None`` and ``NumberFormat.SYSTEM`` use 14 significant digits; an int
    is a significant-digit count; a callable is applied directly.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, complex):
        return str(value).strip("()").replace("j", "i")
    if number_format is None or number_format is NumberFormat.SYSTEM:
        return _format_precision(value, DEFAULT_PRECISION)
    if isinstance(number_format, NumberFormat):
        if number_format is NumberFormat.FIXED:
            if isinstance(value, int):
                if abs(value) < 10 ** FIXED_INT_DIGITS:
                    return str(value)
                return _format_precision(value, DEFAULT_PRECISION)
            return _trim_zeros(f"{value:.{DEFAULT_PRECISION}f}")
        if number_format is NumberFormat.EXPONENTIAL:
            if isinstance(value, int):
                value = Decimal(value)
            return _clean_exponent(f"{value:.{DEFAULT_PRECISION - 1}e}")
        if number_format is NumberFormat.ENGINEERING:
            return _format_engineering(value)
        return _format_grouped(value, number_format)
    if isinstance(number_format, int):
        return _format_precision(value, number_format)
    return number_format(value)
