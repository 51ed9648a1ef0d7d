"""numerals block processing: directives, frontmatter, evaluation, inline.

Entry point::

    from numerals.processing import ScopeCache, process_block

    cache = ScopeCache()
    render = process_block(
        "$rate = 0.2\\nprice = 100\\nprice * (1 + $rate) =>",
        metadata={"numerals": "none"},
        cache=cache,
        note_id="budget.md",
    )
    render.evaluation.results   # [0.2, 100, 120.0]
    cache.get("budget.md")      # {"$rate": 0.2}
"""

from __future__ import annotations

from ._directives import (
    PREVIOUS_VALUE_VARIABLE,
    ROLLING_TOTAL_VARIABLE,
    insertion_target,
    restore_sum_directive,
)
from ._evaluator import evaluate_block
from ._frontmatter import (
    classify_property,
    merge_metadata,
    remove_canonicalized_duplicates,
    resolve_frontmatter_scope,
    select_properties,
)
from ._inline import evaluate_inline, parse_inline_expression
from ._orchestrator import (
    BlockRender,
    apply_result_insertions,
    clean_raw_input,
    extract_comment,
    prepare_line_data,
    process_block,
)
from ._preprocessor import apply_rules, preprocess
from ._rules import build_preprocessors, ensure_currency_units
from ._scope import (
    Scope,
    ScopeCache,
    add_globals_from_scope,
    globals_from_scope,
    is_persistent,
    merge_globals,
)

__all__ = [
    "BlockRender",
    "PREVIOUS_VALUE_VARIABLE",
    "ROLLING_TOTAL_VARIABLE",
    "Scope",
    "ScopeCache",
    "add_globals_from_scope",
    "apply_result_insertions",
    "apply_rules",
    "build_preprocessors",
    "classify_property",
    "clean_raw_input",
    "ensure_currency_units",
    "evaluate_block",
    "evaluate_inline",
    "extract_comment",
    "globals_from_scope",
    "insertion_target",
    "is_persistent",
    "merge_globals",
    "merge_metadata",
    "parse_inline_expression",
    "prepare_line_data",
    "preprocess",
    "process_block",
    "remove_canonicalized_duplicates",
    "resolve_frontmatter_scope",
    "restore_sum_directive",
    "select_properties",
]
