"""The algebra engine: parse, evaluate, add and format values."""

from __future__ import annotations

import ast
import logging
import operator
from collections.abc import MutableMapping, Sequence
from functools import reduce

import pint
from pint.errors import PintError

from numerals.errors import EngineError

from ._executor import Executor, UserFunction
from ._source import match_function_definition, to_python_source
from ._values import NumberFormatSpec, engine_errors, format_number

logger = logging.getLogger(__name__)


class MathEngine:
    """Evaluate math-notation expressions against a mutable scope.

    Each engine owns one pint ``UnitRegistry``; quantities from different
    engines cannot be mixed.

    Parameters
    ----------
    registry : pint.UnitRegistry, optional
        Unit registry to use. A fresh one is created when omitted.
    """

    def __init__(self, registry: pint.UnitRegistry | None = None) -> None:
        self.registry = registry if registry is not None else pint.UnitRegistry()
        self._unit_cache: dict[str, object] = {}

    # -----------------------------------------------------------------------
    # Evaluation
    # -----------------------------------------------------------------------

    def evaluate(self, text: str, scope: MutableMapping[str, object]) -> object:
        """Evaluate *text* against *scope*, writing any assignments into it.

        Returns ``None`` for blank or comment-only text.

        Raises
        ------
        EngineError
            If the text cannot be parsed or evaluated.
        """
        definition = match_function_definition(text)
        if definition is not None:
            name, params, body = definition
            return self._define_function(name, params, body, scope)

        module = self._parse(text, mode="exec")
        with engine_errors():
            return Executor(self, scope).run(module)

    def add(self, *values: object) -> object:
        """Sum *values* pairwise. Raises :class:`EngineError` if they don't add."""
        if not values:
            raise EngineError("add requires at least one value")
        if any(v is None or callable(v) for v in values):
            raise EngineError("Unexpected type of argument in function add")
        with engine_errors():
            return reduce(operator.add, values)

    def _define_function(
        self,
        name: str,
        params: list[str],
        body: str,
        scope: MutableMapping[str, object],
    ) -> UserFunction:
        expression = self._parse(body, mode="eval")
        function = UserFunction(self, name, params, expression, body, scope)
        scope[name] = function
        return function

    @staticmethod
    def _parse(text: str, mode: str) -> ast.AST:
        # very long chains overflow the parser's recursion limit
        with engine_errors():
            source = to_python_source(text)
            try:
                return ast.parse(source, mode=mode)
            except SyntaxError as exc:
                raise EngineError(f"Syntax error: {exc.msg}") from exc

    # -----------------------------------------------------------------------
    # Units
    # -----------------------------------------------------------------------

    def is_quantity(self, value: object) -> bool:
        return isinstance(value, (self.registry.Quantity, pint.Quantity))

    def magnitude(self, value: object) -> object:
        """Strip units from a quantity; other values pass through."""
        if self.is_quantity(value):
            return value.magnitude
        return value

    def unit_quantity(self, name: str) -> object | None:
        """``1 <name>`` as a quantity, or ``None`` if *name* is not a unit."""
        if name in self._unit_cache:
            return self._unit_cache[name]
        try:
            units = self.registry.parse_units(name)
        except (PintError, AttributeError, ValueError):
            return None
        quantity = self.registry.Quantity(1, units)
        self._unit_cache[name] = quantity
        return quantity

    def create_unit(self, name: str, aliases: Sequence[str] = ()) -> None:
        """Define *name* as a new base unit (e.g. a currency code).

        Already-defined names and aliases are left alone, so this is safe to
        call repeatedly.
        """
        if self.unit_quantity(name) is None:
            self.registry.define(f"{name} = [{name.lower()}_dimension]")
            self._unit_cache.pop(name, None)
            logger.info(f"Created unit {name}")
        for alias in aliases:
            if alias == name or not alias.isidentifier():
                continue
            if self.unit_quantity(alias) is None:
                self.registry.define(f"{alias} = {name}")
                logger.debug(f"Created unit alias {alias} for {name}")

    # -----------------------------------------------------------------------
    # Formatting
    # -----------------------------------------------------------------------

    def format(self, value: object, number_format: NumberFormatSpec = None) -> str:
        """Render *value* as display text."""
        if value is None:
            return "undefined"
        if isinstance(value, str):
            return value
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, UserFunction):
            return str(value)
        if self.is_quantity(value):
            magnitude = self.format(value.magnitude, number_format)
            units = f"{value.units:~}"
            return f"{magnitude} {units}" if units else magnitude
        if isinstance(value, list):
            return "[" + ", ".join(self.format(v, number_format) for v in value) + "]"
        if callable(value):
            return getattr(value, "__name__", repr(value))
        with engine_errors():
            return format_number(value, number_format)
