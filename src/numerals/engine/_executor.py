"""Tree-walking executor for parsed expressions.

Only a whitelist of :mod:`ast` node types is evaluated; anything else is an
:class:`EngineError`. Names are looked up in the scope first, then the
builtin constants, then the unit registry.
"""

from __future__ import annotations

import ast
import operator
from collections import ChainMap
from collections.abc import MutableMapping
from typing import TYPE_CHECKING

from numerals.errors import EngineError

from ._builtins import CONSTANTS, FUNCTIONS
from ._source import demangle
from ._values import engine_errors

if TYPE_CHECKING:
    from ._engine import MathEngine


_BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_COMPARISONS = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
}


class UserFunction:
    """A function defined in an expression, e.g. ``f(x) = x^2 + 1``.

    The body is evaluated against the parameters layered over the scope the
    function was defined in, so it sees later changes to that scope.
    """

    def __init__(
        self,
        engine: MathEngine,
        name: str,
        params: list[str],
        body: ast.Expression,
        source: str,
        closure: MutableMapping[str, object],
    ) -> None:
        self.engine = engine
        self.name = name
        self.params = params
        self.body = body
        self.source = source
        self.closure = closure

    def __call__(self, *args: object) -> object:
        if len(args) != len(self.params):
            raise EngineError(
                f"Wrong number of arguments in function {self.name} "
                f"({len(args)} provided, {len(self.params)} expected)"
            )
        local_scope = ChainMap(dict(zip(self.params, args)), self.closure)
        with engine_errors():
            return Executor(self.engine, local_scope).eval_expression(self.body)

    def __str__(self) -> str:
        return f"{self.name}({', '.join(self.params)})"

    def __repr__(self) -> str:
        return f"<UserFunction {self} = {self.source.strip()}>"


class Executor:
    """Evaluate one parsed module or expression against a scope.

    Parameters
    ----------
    engine : MathEngine
        Supplies the unit registry.
    scope : MutableMapping
        Variable bindings. Assignments write into it.
    """

    def __init__(self, engine: MathEngine, scope: MutableMapping[str, object]) -> None:
        self.engine = engine
        self.scope = scope

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    def run(self, module: ast.Module) -> object:
        """Execute every statement; the value of the last one is returned.

        An empty module (blank or comment-only text) returns ``None``.
        """
        value = None
        for stmt in module.body:
            value = self._exec_stmt(stmt)
        return value

    def eval_expression(self, expression: ast.Expression) -> object:
        return self._eval(expression.body)

    # -----------------------------------------------------------------------
    # Statements
    # -----------------------------------------------------------------------

    def _exec_stmt(self, stmt: ast.stmt) -> object:
        if isinstance(stmt, ast.Expr):
            return self._eval(stmt.value)
        if isinstance(stmt, ast.Assign):
            value = self._eval(stmt.value)
            for target in stmt.targets:
                if not isinstance(target, ast.Name):
                    raise EngineError("Invalid left hand side of assignment")
                self.scope[demangle(target.id)] = value
            return value
        raise EngineError(f"Unsupported statement: {type(stmt).__name__}")

    # -----------------------------------------------------------------------
    # Expression dispatch
    # -----------------------------------------------------------------------

    def _eval(self, node: ast.expr) -> object:
        handler = self._EXPR_DISPATCH.get(type(node))
        if handler is None:
            raise EngineError(f"Unsupported expression: {type(node).__name__}")
        return handler(self, node)

    def _eval_constant(self, node: ast.Constant) -> object:
        if isinstance(node.value, (bool, int, float, complex, str)):
            return node.value
        raise EngineError(f"Unsupported literal: {node.value!r}")

    def _eval_name(self, node: ast.Name) -> object:
        key = demangle(node.id)
        if key in self.scope:
            value = self.scope[key]
            if value is not None:
                return value
            raise EngineError(f"Undefined symbol {key}")
        if node.id in CONSTANTS:
            return CONSTANTS[node.id]
        unit = self.engine.unit_quantity(node.id)
        if unit is not None:
            return unit
        raise EngineError(f"Undefined symbol {key}")

    def _eval_binop(self, node: ast.BinOp) -> object:
        op = _BINARY_OPS.get(type(node.op))
        if op is None:
            raise EngineError(f"Unsupported operator: {type(node.op).__name__}")
        left = self._eval(node.left)
        right = self._eval(node.right)
        return op(left, right)

    def _eval_unaryop(self, node: ast.UnaryOp) -> object:
        operand = self._eval(node.operand)
        if isinstance(node.op, ast.USub):
            return -operand
        if isinstance(node.op, ast.UAdd):
            return +operand
        if isinstance(node.op, ast.Not):
            return not operand
        raise EngineError(f"Unsupported operator: {type(node.op).__name__}")

    def _eval_boolop(self, node: ast.BoolOp) -> bool:
        values = [bool(self._eval(v)) for v in node.values]
        if isinstance(node.op, ast.And):
            return all(values)
        return any(values)

    def _eval_compare(self, node: ast.Compare) -> object:
        if len(node.ops) == 1 and isinstance(node.ops[0], ast.In):
            return self._convert(self._eval(node.left), node.comparators[0])
        left = self._eval(node.left)
        for op, comparator in zip(node.ops, node.comparators):
            compare = _COMPARISONS.get(type(op))
            if compare is None:
                raise EngineError(f"Unsupported comparison: {type(op).__name__}")
            right = self._eval(comparator)
            if not compare(left, right):
                return False
            left = right
        return True

    def _eval_call(self, node: ast.Call) -> object:
        if not isinstance(node.func, ast.Name):
            raise EngineError("Only named functions can be called")
        if node.keywords:
            raise EngineError("Keyword arguments are not supported")
        name = demangle(node.func.id)
        func = self.scope.get(name)
        if not callable(func):
            func = FUNCTIONS.get(node.func.id)
        if func is None:
            raise EngineError(f"Undefined function {name}")
        args = []
        for arg in node.args:
            if isinstance(arg, ast.Starred):
                raise EngineError("Unpacking arguments is not supported")
            args.append(self._eval(arg))
        return func(*args)

    def _eval_list(self, node: ast.List) -> list:
        return [self._eval(e) for e in node.elts]

    _EXPR_DISPATCH = {
        ast.Constant: _eval_constant,
        ast.Name: _eval_name,
        ast.BinOp: _eval_binop,
        ast.UnaryOp: _eval_unaryop,
        ast.BoolOp: _eval_boolop,
        ast.Compare: _eval_compare,
        ast.Call: _eval_call,
        ast.List: _eval_list,
    }

    # -----------------------------------------------------------------------
    # Unit conversion
    # -----------------------------------------------------------------------

    def _convert(self, value: object, target: ast.expr) -> object:
        units = self._eval_units(target)
        if not self.engine.is_quantity(value):
            raise EngineError("Unexpected type of argument in conversion (expected a value with units)")
        return value.to(units)

    def _eval_units(self, node: ast.expr) -> object:
        """Evaluate a unit expression (``m``, ``km/h``, ``m^2``) to pint units."""
        if isinstance(node, ast.Name):
            unit = self.engine.unit_quantity(node.id)
            if unit is None:
                raise EngineError(f'Unit "{demangle(node.id)}" not found')
            return unit.units
        if isinstance(node, ast.BinOp):
            left = self._eval_units(node.left)
            if isinstance(node.op, ast.Pow):
                if not isinstance(node.right, ast.Constant):
                    raise EngineError("Unit exponent must be a number")
                return left ** node.right.value
            right = self._eval_units(node.right)
            if isinstance(node.op, ast.Mult):
                return left * right
            if isinstance(node.op, ast.Div):
                return left / right
        raise EngineError("Invalid unit expression in conversion")
