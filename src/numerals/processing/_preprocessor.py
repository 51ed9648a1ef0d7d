"""Directive preprocessing: raw block text -> evaluable source + line metadata."""

from __future__ import annotations

from collections.abc import Sequence

from numerals.model.blocks import BlockInfo, ProcessedBlock, StringReplaceRule

from ._directives import (
    blank_create_unit,
    blank_hide_rows,
    is_create_unit_line,
    is_emitter_line,
    is_hide_rows_line,
    is_insertion_line,
    rewrite_insertions,
    rewrite_previous_value,
    rewrite_rolling_total,
    strip_emitter_markup,
)


def apply_rules(text: str, rules: Sequence[StringReplaceRule]) -> str:
    """Apply substitution rules in order."""
    for rule in rules:
        text = rule.apply(text)
    return text


def classify_lines(raw_rows: Sequence[str]) -> BlockInfo:
    """Collect emitter, insertion and hidden line indices."""
    emitter_lines: list[int] = []
    insertion_lines: list[int] = []
    hidden_lines: list[int] = []
    hide_non_emitters = False

    for i, line in enumerate(raw_rows):
        if is_emitter_line(line):
            emitter_lines.append(i)
        if is_insertion_line(line):
            insertion_lines.append(i)
        if is_hide_rows_line(line):
            hidden_lines.append(i)
            hide_non_emitters = True
        if is_create_unit_line(line):
            hidden_lines.append(i)

    return BlockInfo(
        emitter_lines=emitter_lines,
        insertion_lines=insertion_lines,
        hidden_lines=hidden_lines,
        hide_non_emitter_lines=hide_non_emitters,
    )


def preprocess(source: str, rules: Sequence[StringReplaceRule] = ()) -> ProcessedBlock:
    """Rewrite directives out of *source* and classify its lines.

    The processed source keeps one line per raw row, so indices in the
    returned :class:`BlockInfo` line up with both. Caller *rules* (currency
    symbols, thousands separators...) run last. Never raises: malformed
    directives stay in the text and fail later in evaluation.
    """
    raw_rows = source.split("\n")
    block_info = classify_lines(raw_rows)

    processed = strip_emitter_markup(source)
    processed = rewrite_insertions(processed)
    processed = rewrite_rolling_total(processed)
    processed = rewrite_previous_value(processed)
    processed = blank_hide_rows(processed)
    processed = blank_create_unit(processed)
    processed = apply_rules(processed, rules)

    return ProcessedBlock(
        raw_rows=raw_rows,
        processed_source=processed,
        block_info=block_info,
    )
