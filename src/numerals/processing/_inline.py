"""Single-expression evaluation for inline code spans (``=: 2 + 3``)."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from numerals.engine import AlgebraEngine, NumberFormatSpec, default_engine
from numerals.errors import InlineEvaluationError
from numerals.model.blocks import StringReplaceRule
from numerals.model.inline import InlineExpression, InlineMode, InlineResult

from ._directives import PREVIOUS_VALUE_VARIABLE, has_previous_value_directive, rewrite_previous_value
from ._preprocessor import apply_rules
from ._scope import Scope, is_persistent

logger = logging.getLogger(__name__)


def parse_inline_expression(
    text: str,
    result_trigger: str = "=:",
    equation_trigger: str = "==:",
) -> InlineExpression | None:
    """Recognize an inline span by its trigger prefix.

    The longer trigger is tried first since the triggers usually share a
    prefix. Returns ``None`` for text without a trigger or with nothing
    after it.
    """
    triggers = [
        (result_trigger, InlineMode.RESULT_ONLY),
        (equation_trigger, InlineMode.EQUATION),
    ]
    triggers.sort(key=lambda t: len(t[0]), reverse=True)

    stripped = text.strip()
    for trigger, mode in triggers:
        if trigger and stripped.startswith(trigger):
            expression = stripped[len(trigger):].strip()
            if not expression:
                return None
            return InlineExpression(mode=mode, expression=expression)
    return None


def _changed_globals(before: Mapping[str, object], after: Mapping[str, object]) -> dict[str, object]:
    return {
        k: v
        for k, v in after.items()
        if is_persistent(k) and (k not in before or before[k] is not v)
    }


def evaluate_inline(
    text: str,
    scope: Mapping[str, object],
    prior_result: object = None,
    rules: Sequence[StringReplaceRule] = (),
    engine: AlgebraEngine | None = None,
    number_format: NumberFormatSpec = None,
) -> InlineResult:
    """Evaluate one inline expression against a copy of *scope*.

    Parameters
    ----------
    text : str
        The expression, trigger already removed.
    scope : Mapping
        Note bindings. Never mutated.
    prior_result : object, optional
        Raw value of the previous inline expression, bound for ``@prev``.
    rules : sequence of StringReplaceRule
        Applied to the text before evaluation.
    engine : AlgebraEngine, optional
        Defaults to the shared engine.
    number_format : NumberFormat, int or callable, optional
        Passed to ``engine.format``.

    Returns
    -------
    InlineResult

    Raises
    ------
    InlineEvaluationError
        If ``@prev`` has nothing to refer to, or the expression yields no value.
    EngineError
        If the engine fails.
    """
    if engine is None:
        engine = default_engine()
    local_scope = Scope(scope)

    if has_previous_value_directive(text):
        if prior_result is None:
            raise InlineEvaluationError("No previous inline result")
        local_scope[PREVIOUS_VALUE_VARIABLE] = prior_result
        text = rewrite_previous_value(text)

    source = apply_rules(text, rules)
    value = engine.evaluate(source, local_scope)
    if value is None:
        raise InlineEvaluationError("Expression produced no result")

    new_globals = _changed_globals(scope, local_scope)
    if new_globals:
        logger.debug(f"Inline expression bound globals: {sorted(new_globals)}")

    return InlineResult(
        formatted=engine.format(value, number_format),
        raw=value,
        new_globals=new_globals,
    )
