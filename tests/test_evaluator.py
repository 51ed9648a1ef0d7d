"""Tests for row-sequential block evaluation."""

import pytest

from conftest import FailingEngine, fmt, run_block

from numerals.errors import EngineError, PreviousValueError, RollingTotalError
from numerals.processing import Scope, evaluate_block, preprocess
from numerals.processing._evaluator import contributing_run, split_rows


def evaluate_rows(rows, scope=None):
    return evaluate_block("\n".join(rows), Scope() if scope is None else scope)


class TestSplitRows:
    def test_trailing_empty_dropped(self):
        assert split_rows("1\n2\n") == ["1", "2"]

    def test_only_one_trailing_row_dropped(self):
        assert split_rows("1\n\n") == ["1", ""]

    def test_inner_blank_kept(self):
        assert split_rows("1\n\n2") == ["1", "", "2"]


class TestContributingRun:
    def test_all_defined(self):
        assert contributing_run([1, 2, 3]) == [1, 2, 3]

    def test_since_last_blank(self):
        assert contributing_run([1, None, 2, 3]) == [2, 3]

    def test_ends_on_blank(self):
        assert contributing_run([1, 2, None]) == []

    def test_empty(self):
        assert contributing_run([]) == []


# ---------------------------------------------------------------------------
# Sequential evaluation
# ---------------------------------------------------------------------------

class TestSequential:
    def test_dependency_ordering(self):
        result = evaluate_rows(["x = 5", "x * 2"])
        assert result.results[1] == 10

    def test_all_rows_valid(self):
        result = evaluate_rows(["1 + 1", "x = 3", "x ^ 2", "# note", "", "x"])
        assert len(result.results) == len(result.inputs) == 6
        assert result.error is None
        assert result.offending_row == ""

    def test_blank_and_comment_rows_are_none(self):
        result = evaluate_rows(["1", "", "# heading"])
        assert result.results == [1, None, None]

    def test_scope_mutated(self):
        scope = Scope()
        evaluate_rows(["price = 4", "qty = price * 2"], scope)
        assert scope["price"] == 4
        assert scope["qty"] == 8

    def test_uses_given_scope(self):
        result = evaluate_rows(["rate * 10"], Scope(rate=3))
        assert result.results == [30]

    def test_end_to_end(self):
        processed = preprocess("apples = 2\n2 + 3 =>\n")
        assert processed.block_info.emitter_lines == [1]
        assert processed.processed_source == "apples = 2\n2 + 3\n"
        result = evaluate_block(processed.processed_source, Scope())
        assert result.results == [2, 5]
        assert result.error is None

    def test_units_flow_between_rows(self):
        result, _ = run_block("""
            distance = 5 km
            distance to m
        """)
        assert fmt(result.results[1]) == "5000 m"


class TestHaltOnError:
    def test_stops_at_first_failure(self):
        result = evaluate_rows(["1", "undefined_thing", "3"])
        assert result.results == [1]
        assert result.inputs == ["1"]
        assert isinstance(result.error, EngineError)
        assert result.offending_row == "undefined_thing"

    def test_later_bindings_not_made(self):
        scope = Scope()
        evaluate_rows(["1 +", "late = 1"], scope)
        assert "late" not in scope

    def test_first_row_failure(self):
        result = evaluate_rows(["2 +"])
        assert result.results == []
        assert result.inputs == []
        assert result.offending_row == "2 +"

    def test_overlong_row_captured(self):
        long_row = "-" * 5000 + "1"
        result = evaluate_rows(["1", long_row, "3"])
        assert result.results == [1]
        assert isinstance(result.error, EngineError)
        assert result.offending_row == long_row


class TestCustomEngine:
    def test_foreign_error_captured_verbatim(self):
        result = evaluate_block("1\nboom\n3", Scope(), FailingEngine())
        assert result.results == [1]
        assert isinstance(result.error, ValueError)
        assert str(result.error) == "cannot evaluate boom"
        assert result.offending_row == "boom"

    def test_failed_add_is_summing_error(self):
        engine = FailingEngine(fail_add=True)
        result = evaluate_block("2\n3\n__total", Scope(), engine)
        assert result.results == [2, 3]
        assert isinstance(result.error, RollingTotalError)

    def test_failed_add_ignored_when_unused(self):
        engine = FailingEngine(fail_add=True)
        result = evaluate_block("2\n3\n4", Scope(), engine)
        assert result.results == [2, 3, 4]
        assert result.error is None


class TestMagicBindings:
    def test_removed_after_block(self):
        scope = Scope()
        evaluate_rows(["2", "3", "__total", "__prev * 2"], scope)
        assert "__prev" not in scope
        assert "__total" not in scope

    def test_removed_after_failure(self):
        scope = Scope()
        evaluate_rows(["2", "3", "undefined_thing"], scope)
        assert "__prev" not in scope
        assert "__total" not in scope

    def test_user_bindings_kept(self):
        scope = Scope()
        evaluate_rows(["qty = 2", "__prev + 1"], scope)
        assert scope == {"qty": 2}


# ---------------------------------------------------------------------------
# Previous value
# ---------------------------------------------------------------------------

class TestPreviousValue:
    def test_previous_result(self):
        result = evaluate_rows(["10", "__prev + 1"])
        assert result.results[1] == 11

    def test_chained(self):
        result = evaluate_rows(["1", "__prev * 2", "__prev * 2"])
        assert result.results == [1, 2, 4]

    def test_no_previous_row(self):
        result = evaluate_rows(["__prev"])
        assert isinstance(result.error, PreviousValueError)
        assert "no previous result" in result.error.message
        assert result.offending_row == "__prev"

    def test_after_blank_row(self):
        result = evaluate_rows(["10", "", "__prev"])
        assert isinstance(result.error, PreviousValueError)
        assert result.results == [10, None]

    def test_directive_spelling(self):
        result, _ = run_block("""
            4
            @Prev * 3
        """)
        assert result.results == [4, 12]


# ---------------------------------------------------------------------------
# Rolling total
# ---------------------------------------------------------------------------

class TestRollingTotal:
    @pytest.mark.parametrize(
        "rows, expected",
        [
            (["2", "3", "__total"], 5),
            (["5", "__total"], 5),
            (["2", "", "3", "__total"], 3),
            (["2", "# subtotal", "3", "__total"], 3),
            (["1", "2", "", "4", "5", "__total"], 9),
            (["x = 4", "6", "__total"], 10),
            (["2", "3", "__total * 2"], 10),
            (["2", "3", "__total", "__total"], 10),
            (["2", "3", "__total", "", "7", "__total"], 7),
        ],
    )
    def test_contributing_run(self, rows, expected):
        result = evaluate_rows(rows)
        assert result.error is None
        assert result.results[-1] == expected

    def test_nothing_to_sum(self):
        result = evaluate_rows(["1", "", "__total"])
        assert isinstance(result.error, EngineError)
        assert result.offending_row == "__total"

    def test_quantities(self):
        result = evaluate_rows(["5 m", "20 cm", "__total"])
        assert fmt(result.results[-1]) == "5.2 m"

    def test_not_summable(self):
        result = evaluate_rows(["5 m", "2 s", "__total"])
        assert isinstance(result.error, RollingTotalError)
        assert result.error.name == "Summing Error"
        assert len(result.results) == 2

    def test_unsummable_rows_do_not_block_unrelated_row(self):
        result = evaluate_rows(["5 m", "2 s", "7"])
        assert result.error is None
        assert result.results[-1] == 7

    def test_directive_spelling(self):
        result, _ = run_block("""
            10
            15
            @Total
            @sum / 2
        """)
        assert result.results == [10, 15, 25, 25]

    def test_function_rows_not_summable(self):
        result = evaluate_rows(["f(x) = x", "2", "__total"])
        assert isinstance(result.error, RollingTotalError)

