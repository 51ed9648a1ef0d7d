"""Exception hierarchy.

Every error carries a short human-readable ``name`` (e.g. "Summing Error")
alongside its message so a renderer can show ``name: message``.
"""

from __future__ import annotations


class NumeralsError(Exception):
    """Base class for all numerals errors."""

    name = "Error"

    def __init__(self, message: str, name: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if name is not None:
            self.name = name


class EngineError(NumeralsError):
    """The algebra engine could not parse or evaluate an expression."""

    name = "Evaluation Error"


class PreviousValueError(NumeralsError):
    """``@prev`` used on a row with no previous result."""

    name = "Previous Value Error"


class RollingTotalError(NumeralsError):
    """``@sum``/``@total`` used when the contributing rows cannot be added."""

    name = "Summing Error"


class InlineEvaluationError(NumeralsError):
    """An inline expression failed or produced nothing to show."""

    name = "Inline Error"
