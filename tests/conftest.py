"""Shared test helpers for the numerals test suite."""

import textwrap

import pytest

from numerals.engine import MathEngine, default_engine
from numerals.processing import Scope, evaluate_block, preprocess


def block(source: str) -> str:
    """Dedent a triple-quoted block and drop the leading newline."""
    return textwrap.dedent(source).lstrip("\n")


def run_block(source: str, scope=None, rules=(), engine=None):
    """Preprocess and evaluate *source*. Returns ``(EvaluationResult, scope)``."""
    if scope is None:
        scope = Scope()
    processed = preprocess(block(source), rules)
    result = evaluate_block(processed.processed_source, scope, engine)
    return result, scope


def fmt(value) -> str:
    """Format with the shared engine's defaults."""
    return default_engine().format(value)


@pytest.fixture(scope="module")
def engine():
    """A private engine, for tests that define units."""
    return MathEngine()


class FailingEngine:
    """Delegates to the shared engine but raises ``ValueError`` on request.

    ``evaluate`` fails on text containing *failing_text*; ``add`` and
    ``format`` fail when their flags are set.
    """

    def __init__(self, failing_text="boom", fail_add=False, fail_format=False):
        self.failing_text = failing_text
        self.fail_add = fail_add
        self.fail_format = fail_format

    def evaluate(self, text, scope):
        if self.failing_text in text:
            raise ValueError(f"cannot evaluate {text.strip()}")
        return default_engine().evaluate(text, scope)

    def add(self, *values):
        if self.fail_add:
            raise ValueError("cannot add")
        return default_engine().add(*values)

    def format(self, value, number_format=None):
        if self.fail_format:
            raise ValueError("cannot format")
        return default_engine().format(value, number_format)

    def is_quantity(self, value):
        return default_engine().is_quantity(value)

    def magnitude(self, value):
        return default_engine().magnitude(value)
