"""Tests for the algebra engine: parsing, evaluation, units and formatting."""

import pytest

from conftest import fmt

from numerals.engine import AlgebraEngine, MathEngine, UserFunction, default_engine
from numerals.engine._source import match_function_definition, to_python_source
from numerals.errors import EngineError


def ev(text, scope=None):
    return default_engine().evaluate(text, {} if scope is None else scope)


# ---------------------------------------------------------------------------
# Source rewriting
# ---------------------------------------------------------------------------

class TestSourceRewrite:
    def test_caret_is_power(self):
        assert to_python_source("2^3") == "2 ** 3"

    def test_to_is_conversion(self):
        assert to_python_source("5 km to m") == "5 * km in m"

    def test_glued_number_and_unit(self):
        assert to_python_source("5km") == "5 * km"

    def test_exponent_literal_not_split(self):
        assert to_python_source("1e3") == "1e3"

    def test_number_before_paren(self):
        assert to_python_source("2(3 + 4)") == "2 * ( 3 + 4 )"

    def test_call_not_multiplied(self):
        assert to_python_source("sqrt(4)") == "sqrt ( 4 )"

    def test_dollar_names_mangled(self):
        assert to_python_source("$rate * 2") == "__global_rate * 2"

    def test_comment_dropped(self):
        assert to_python_source("1 + 1 # two") == "1 + 1"

    def test_unexpected_character(self):
        with pytest.raises(EngineError):
            ev("2 ? 3")


class TestFunctionDefinitionMatch:
    def test_simple(self):
        assert match_function_definition("f(x) = x^2") == ("f", ["x"], " x^2")

    def test_multiple_params(self):
        name, params, _ = match_function_definition("area(w, h) = w * h")
        assert name == "area"
        assert params == ["w", "h"]

    def test_no_params(self):
        assert match_function_definition("k() = 3")[1] == []

    def test_comparison_is_not_definition(self):
        assert match_function_definition("f(2) == 4") is None

    def test_call_is_not_definition(self):
        assert match_function_definition("f(2) + 1") is None

    def test_bad_parameter(self):
        with pytest.raises(EngineError, match="Invalid parameter"):
            match_function_definition("f(2 x) = x")


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------

class TestArithmetic:
    def test_precedence(self):
        assert ev("2 + 3 * 4") == 14

    def test_power(self):
        assert ev("2 ^ 10") == 1024

    def test_implicit_multiplication_with_variable(self):
        assert ev("3 qty", {"qty": 4}) == 12

    def test_implicit_multiplication_with_paren(self):
        assert ev("2(3 + 4)") == 14

    def test_unary_minus(self):
        assert ev("-4 + 1") == -3

    def test_constants(self):
        assert ev("pi") == pytest.approx(3.141592653589793)

    def test_comparison(self):
        assert ev("3 > 2") is True

    def test_chained_comparison(self):
        assert ev("1 < 2 < 3") is True

    def test_list_literal(self):
        assert ev("[1, 2, 3]") == [1, 2, 3]

    def test_division_by_zero(self):
        with pytest.raises(EngineError):
            ev("1 / 0")

    def test_syntax_error(self):
        with pytest.raises(EngineError, match="Syntax error"):
            ev("2 +")


class TestBlankAndComments:
    def test_empty(self):
        assert ev("") is None

    def test_whitespace(self):
        assert ev("   ") is None

    def test_comment_only(self):
        assert ev("# Heading") is None

    def test_trailing_comment(self):
        assert ev("2 + 3 # five") == 5


class TestNamesAndAssignment:
    def test_assignment_writes_scope(self):
        scope = {}
        assert ev("price = 20", scope) == 20
        assert scope == {"price": 20}

    def test_statements_return_last(self):
        scope = {}
        assert ev("qty = 3; qty * 2", scope) == 6
        assert scope["qty"] == 3

    def test_persistent_name(self):
        scope = {}
        ev("$rate = 0.5", scope)
        assert scope == {"$rate": 0.5}
        assert ev("$rate * 4", scope) == 2.0

    def test_undefined_symbol(self):
        with pytest.raises(EngineError, match="Undefined symbol"):
            ev("undefined_thing + 1")

    def test_none_binding_is_undefined(self):
        with pytest.raises(EngineError, match="Undefined symbol qty"):
            ev("qty + 1", {"qty": None})

    def test_scope_shadows_constants(self):
        assert ev("pi", {"pi": 3}) == 3

    def test_attribute_access_rejected(self):
        with pytest.raises(EngineError, match="Unsupported expression"):
            ev("(1).real")

    def test_unknown_function(self):
        with pytest.raises(EngineError, match="Undefined function"):
            ev("__import__('os')")

    def test_keyword_arguments_rejected(self):
        with pytest.raises(EngineError):
            ev("round(2.5, ndigits=1)")


class TestUserFunctions:
    def test_define_and_call(self):
        scope = {}
        fn = ev("f(x) = x^2 + 1", scope)
        assert isinstance(fn, UserFunction)
        assert ev("f(3)", scope) == 10

    def test_multiple_params(self):
        scope = {}
        ev("area(w, h) = w * h", scope)
        assert ev("area(3, 4)", scope) == 12

    def test_sees_later_bindings(self):
        scope = {}
        ev("scaled(x) = x * factor", scope)
        ev("factor = 10", scope)
        assert ev("scaled(2)", scope) == 20

    def test_params_do_not_leak(self):
        scope = {}
        ev("f(x) = x + 1", scope)
        ev("f(1)", scope)
        assert "x" not in scope

    def test_wrong_arity(self):
        scope = {}
        ev("f(x) = x", scope)
        with pytest.raises(EngineError, match="Wrong number of arguments"):
            ev("f(1, 2)", scope)

    def test_persistent_function(self):
        scope = {}
        ev("$double(x) = 2 x", scope)
        assert ev("$double(21)", scope) == 42

    def test_runaway_recursion(self):
        scope = {}
        ev("loop(x) = loop(x)", scope)
        with pytest.raises(EngineError):
            ev("loop(1)", scope)


class TestBuiltins:
    def test_sqrt(self):
        assert ev("sqrt(16)") == 4

    def test_max(self):
        assert ev("max(3, 7, 5)") == 7

    def test_round_digits(self):
        assert ev("round(2.567, 2)") == pytest.approx(2.57)

    def test_floor_keeps_units(self):
        assert fmt(ev("floor(2.7 m)")) == "2 m"

    def test_mean(self):
        assert ev("mean(1, 2, 3)") == 2


# ---------------------------------------------------------------------------
# Units
# ---------------------------------------------------------------------------

class TestUnits:
    def test_quantity(self):
        assert fmt(ev("5 m")) == "5 m"

    def test_conversion(self):
        assert fmt(ev("5 km to m")) == "5000 m"

    def test_conversion_with_in(self):
        assert fmt(ev("2 h in min")) == "120 min"

    def test_compound_conversion_target(self):
        value = ev("36 km / h to m / s")
        assert default_engine().magnitude(value) == pytest.approx(10)

    def test_incompatible_addition(self):
        with pytest.raises(EngineError):
            ev("5 m + 2 s")

    def test_convert_plain_number(self):
        with pytest.raises(EngineError, match="expected a value with units"):
            ev("5 to m")

    def test_unknown_conversion_unit(self):
        with pytest.raises(EngineError, match="not found"):
            ev("5 m to undefined_unit")

    def test_create_unit(self, engine):
        engine.create_unit("WIDGET", aliases=["widget"])
        assert engine.format(engine.evaluate("3 WIDGET + 2 widget", {})) == "5 WIDGET"

    def test_create_unit_idempotent(self, engine):
        engine.create_unit("GADGET")
        engine.create_unit("GADGET")
        assert engine.is_quantity(engine.evaluate("2 GADGET", {}))

    def test_magnitude_passthrough(self):
        assert default_engine().magnitude(7) == 7


# ---------------------------------------------------------------------------
# add / format / protocol
# ---------------------------------------------------------------------------

class TestAdd:
    def test_numbers(self):
        assert default_engine().add(1, 2, 3) == 6

    def test_single(self):
        assert default_engine().add(4) == 4

    def test_quantities(self):
        eng = default_engine()
        total = eng.add(eng.evaluate("1 m", {}), eng.evaluate("50 cm", {}))
        assert eng.format(total) == "1.5 m"

    def test_empty(self):
        with pytest.raises(EngineError):
            default_engine().add()

    def test_incompatible(self):
        eng = default_engine()
        with pytest.raises(EngineError):
            eng.add(eng.evaluate("1 m", {}), 2)

    def test_function_not_addable(self):
        scope = {}
        fn = ev("f(x) = x", scope)
        with pytest.raises(EngineError):
            default_engine().add(1, fn)


class TestFormat:
    def test_none(self):
        assert fmt(None) == "undefined"

    def test_integer(self):
        assert fmt(42) == "42"

    def test_float_noise_trimmed(self):
        assert fmt(0.1 + 0.2) == "0.3"

    def test_bool(self):
        assert fmt(True) == "true"

    def test_function_signature(self):
        fn = ev("f(x, y) = x + y", {})
        assert fmt(fn) == "f(x, y)"

    def test_list(self):
        assert fmt([1, 2.5]) == "[1, 2.5]"

    def test_string(self):
        assert fmt("hello") == "hello"

    def test_large_int_power(self):
        assert fmt(ev("2^100")) == "1.2676506002282e+30"

    def test_huge_int_power(self):
        assert fmt(ev("2^20000")).endswith("e+6020")


class TestInputLimits:
    def test_long_unary_chain(self):
        with pytest.raises(EngineError):
            ev("-" * 5000 + "1")

    def test_long_sum(self):
        with pytest.raises(EngineError):
            ev("+".join(["1"] * 50000))


class TestProtocol:
    def test_math_engine_is_algebra_engine(self):
        assert isinstance(MathEngine(), AlgebraEngine)

    def test_default_engine_shared(self):
        assert default_engine() is default_engine()
