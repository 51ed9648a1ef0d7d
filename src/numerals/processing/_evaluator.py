"""Row-sequential block evaluation with previous-value and rolling-total magic."""

from __future__ import annotations

import logging
from collections.abc import MutableMapping

from numerals.engine import AlgebraEngine, default_engine
from numerals.errors import PreviousValueError, RollingTotalError
from numerals.model.blocks import EvaluationResult

from ._directives import (
    PREVIOUS_VALUE_VARIABLE,
    ROLLING_TOTAL_VARIABLE,
    references_previous_value,
    references_rolling_total,
)

logger = logging.getLogger(__name__)


def split_rows(processed_source: str) -> list[str]:
    """Split into rows, dropping a single trailing empty row."""
    rows = processed_source.split("\n")
    if rows and rows[-1] == "":
        rows.pop()
    return rows


def contributing_run(results: list[object]) -> list[object]:
    """Results after the most recent undefined (blank/comment) row.

    A blank or comment row ends the run; the rows after it start a new one.
    """
    run: list[object] = []
    for value in reversed(results):
        if value is None:
            break
        run.append(value)
    run.reverse()
    return run


def _bind_previous_value(scope: MutableMapping[str, object], results: list[object]) -> None:
    if results and results[-1] is not None:
        scope[PREVIOUS_VALUE_VARIABLE] = results[-1]
    else:
        scope.pop(PREVIOUS_VALUE_VARIABLE, None)


def _bind_rolling_total(
    scope: MutableMapping[str, object],
    results: list[object],
    engine: AlgebraEngine,
) -> None:
    """Bind the rolling total of the contributing run, or leave it unbound.

    Raises :class:`EngineError` if the run has several values that don't add;
    the binding is removed first.
    """
    run = contributing_run(results)
    if not run:
        scope.pop(ROLLING_TOTAL_VARIABLE, None)
    elif len(run) == 1:
        scope[ROLLING_TOTAL_VARIABLE] = run[0]
    else:
        scope.pop(ROLLING_TOTAL_VARIABLE, None)
        scope[ROLLING_TOTAL_VARIABLE] = engine.add(*run)


def evaluate_block(
    processed_source: str,
    scope: MutableMapping[str, object],
    engine: AlgebraEngine | None = None,
) -> EvaluationResult:
    """Evaluate a preprocessed block one row at a time against *scope*.

    Rows run strictly in order through the same scope, so a binding made on
    one row is visible from the next row on. Evaluation stops at the first
    failing row; everything before it is kept.

    Parameters
    ----------
    processed_source : str
        Directive-free text, one expression per line.
    scope : MutableMapping
        Live bindings, mutated in place. The ``__prev`` and ``__total``
        magic variables are bound per row and removed afterwards.
    engine : AlgebraEngine, optional
        Defaults to the shared :func:`~numerals.engine.default_engine`.

    Returns
    -------
    EvaluationResult
        Parallel ``results``/``inputs`` up to the first failure, plus the
        captured error and the row that raised it. Any exception from the
        engine is captured as is, so custom engines need not raise
        :class:`EngineError`.
    """
    if engine is None:
        engine = default_engine()
    results: list[object] = []
    inputs: list[str] = []
    error: Exception | None = None
    offending_row = ""

    for index, row in enumerate(split_rows(processed_source)):
        _bind_previous_value(scope, results)
        if PREVIOUS_VALUE_VARIABLE not in scope and references_previous_value(row):
            error = PreviousValueError(
                "Error evaluating @prev directive. There is no previous result."
            )
            offending_row = row
            break

        try:
            _bind_rolling_total(scope, results, engine)
        except Exception:
            if references_rolling_total(row):
                error = RollingTotalError(
                    "Error evaluating @sum or @total directive. "
                    "Previous lines may not be summable."
                )
                offending_row = row
                break
            logger.debug(f"Rolling total unavailable before row {index}; row does not use it")

        try:
            value = engine.evaluate(row, scope)
        except Exception as exc:
            error = exc
            offending_row = row
            break

        results.append(value)
        inputs.append(row)

    for name in (PREVIOUS_VALUE_VARIABLE, ROLLING_TOTAL_VARIABLE):
        scope.pop(name, None)

    if error is not None:
        logger.debug(f"Block evaluation stopped at row {len(results)}: {error}")

    return EvaluationResult(
        results=results,
        inputs=inputs,
        error=error,
        offending_row=offending_row,
    )
