"""Block pipeline: merge metadata, preprocess, resolve, evaluate, prepare lines.

Nothing here draws anything. :func:`process_block` returns a
:class:`BlockRender` holding per-line data and the rows to write back into
the note; the host decides how to display them.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict

from numerals.engine import AlgebraEngine, MathEngine, NumberFormatSpec, default_engine
from numerals.model.blocks import (
    BlockInfo,
    EvaluationResult,
    LineRenderData,
    ProcessedBlock,
    StringReplaceRule,
)
from numerals.model.frontmatter import FrontmatterProcessingWarning
from numerals.model.settings import NumeralsSettings

from ._directives import (
    has_rolling_total_directive,
    insertion_target,
    restore_sum_directive,
    rewrite_insertions,
    strip_emitter_markup,
    write_insertion_value,
)
from ._evaluator import evaluate_block
from ._frontmatter import merge_metadata, resolve_frontmatter_scope
from ._preprocessor import preprocess
from ._rules import build_preprocessors, ensure_currency_units
from ._scope import ScopeCache, add_globals_from_scope

logger = logging.getLogger(__name__)

_COMMENT_RE = re.compile(r"#.+$")


# ---------------------------------------------------------------------------
# Display preparation
# ---------------------------------------------------------------------------

def extract_comment(raw_input: str) -> tuple[str, str | None]:
    """Split ``"2 + 2 # note"`` into ``("2 + 2 ", "# note")``.

    The first ``#`` starts the comment. A bare ``#`` is not a comment.
    """
    m = _COMMENT_RE.search(raw_input)
    if m is None:
        return raw_input, None
    return raw_input[:m.start()], m.group(0)


def clean_raw_input(raw_input: str, hide_emitter_markup: bool = True) -> str:
    """Authored line as shown next to its result.

    Insertion directives always reduce to their variable name; emitter
    markup is removed only when *hide_emitter_markup* is set.
    """
    cleaned = raw_input
    if hide_emitter_markup:
        cleaned = strip_emitter_markup(cleaned, keep_trailing=True)
    return rewrite_insertions(cleaned)


def prepare_line_data(
    index: int,
    raw_rows: Sequence[str],
    inputs: Sequence[str],
    results: Sequence[Any],
    block_info: BlockInfo,
    settings: NumeralsSettings | None = None,
) -> LineRenderData:
    """Collect what a renderer needs for line *index*.

    The processed input shows the author's ``@sum``/``@total`` spelling
    rather than the rolling-total variable it was rewritten to.
    """
    settings = settings or NumeralsSettings()
    raw_input = raw_rows[index] if index < len(raw_rows) else ""
    cleaned = clean_raw_input(raw_input, settings.hide_emitter_markup_in_input)
    without_comment, comment = extract_comment(cleaned)

    processed_input = inputs[index] if index < len(inputs) else ""
    if has_rolling_total_directive(raw_input):
        processed_input = restore_sum_directive(processed_input, raw_input)

    result = results[index] if index < len(results) else None
    is_emitter = index in block_info.emitter_lines
    is_hidden = index in block_info.hidden_lines or (
        block_info.hide_non_emitter_lines and not is_emitter
    )

    return LineRenderData(
        index=index,
        raw_input=without_comment,
        processed_input=processed_input,
        result=result,
        is_empty=result is None,
        is_emitter=is_emitter,
        is_hidden=is_hidden,
        comment=comment,
    )


def apply_result_insertions(
    raw_rows: Sequence[str],
    results: Sequence[Any],
    insertion_lines: Sequence[int],
    engine: AlgebraEngine | None = None,
    number_format: NumberFormatSpec = None,
) -> list[str]:
    """Write each insertion line's formatted result into its directive.

    ``@[x] = 2 + 3`` becomes ``@[x::5] = 2 + 3``. Rows whose evaluation
    never ran or produced nothing are left alone, as are rows whose result
    the engine fails to format. Returns a new list.
    """
    if engine is None:
        engine = default_engine()
    rows = list(raw_rows)
    for i in insertion_lines:
        if i >= len(results) or i >= len(rows) or results[i] is None:
            continue
        try:
            formatted = engine.format(results[i], number_format)
        except Exception as exc:
            logger.warning(
                f"Could not write result for {insertion_target(rows[i])} on line {i}: {exc}"
            )
            continue
        rows[i] = write_insertion_value(rows[i], formatted)
    return rows


# ---------------------------------------------------------------------------
# Block pipeline
# ---------------------------------------------------------------------------

class BlockRender(BaseModel):
    """Everything produced by one pass over a block."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    processed: ProcessedBlock
    evaluation: EvaluationResult
    lines: list[LineRenderData]
    scope: dict[str, Any]
    warnings: list[FrontmatterProcessingWarning] = []
    updated_rows: list[str] = []
    hide_lines_without_markup: bool = False

    @property
    def error(self) -> Exception | None:
        return self.evaluation.error

    @property
    def has_emitters(self) -> bool:
        return bool(self.processed.block_info.emitter_lines)

    def visible_lines(self) -> list[LineRenderData]:
        """Lines to draw, honoring ``@hideRows`` and emitter-only display."""
        emitter_only = self.hide_lines_without_markup and self.has_emitters
        return [
            line for line in self.lines
            if not line.is_hidden and (line.is_emitter or not emitter_only)
        ]

    def rows_changed(self) -> bool:
        """Result insertion changed at least one authored row."""
        return self.updated_rows != self.processed.raw_rows


def process_block(
    source: str,
    metadata: Mapping[str, object] | None = None,
    settings: NumeralsSettings | None = None,
    rules: Sequence[StringReplaceRule] | None = None,
    engine: AlgebraEngine | None = None,
    cache: ScopeCache | None = None,
    note_id: str | None = None,
    secondary_metadata: Mapping[str, object] | None = None,
) -> BlockRender:
    """Run a block through the whole pipeline.

    Parameters
    ----------
    source : str
        Raw block text.
    metadata : Mapping, optional
        The note's frontmatter.
    settings : NumeralsSettings, optional
        Defaults to ``NumeralsSettings()``.
    rules : sequence of StringReplaceRule, optional
        Defaults to :func:`build_preprocessors` for *settings*.
    engine : AlgebraEngine, optional
        Defaults to the shared engine. Currency units are defined on a
        :class:`~numerals.engine.MathEngine` before evaluation.
    cache, note_id : optional
        When both are given, the note's cached persistent bindings feed the
        scope and the block's own ``$`` bindings are merged back.
    secondary_metadata : Mapping, optional
        Extra properties (e.g. inline fields) that override *metadata*.

    Returns
    -------
    BlockRender
        Evaluation errors are captured in ``evaluation.error``, never raised.
    """
    settings = settings or NumeralsSettings()
    if engine is None:
        engine = default_engine()
    if isinstance(engine, MathEngine):
        ensure_currency_units(engine, settings.currency_map())
    if rules is None:
        rules = build_preprocessors(settings)

    use_cache = cache is not None and note_id is not None
    note_scope = cache.get(note_id) if use_cache else None
    merged = merge_metadata(metadata, secondary_metadata, note_scope)

    processed = preprocess(source, rules)
    scope_result = resolve_frontmatter_scope(
        merged,
        force_all=settings.force_process_all_frontmatter,
        rules=rules,
        engine=engine,
    )
    scope = scope_result.scope

    evaluation = evaluate_block(processed.processed_source, scope, engine)
    if use_cache:
        add_globals_from_scope(note_id, scope, cache)

    lines = [
        prepare_line_data(
            i,
            processed.raw_rows,
            evaluation.inputs,
            evaluation.results,
            processed.block_info,
            settings,
        )
        for i in range(len(evaluation.inputs))
    ]
    updated_rows = apply_result_insertions(
        processed.raw_rows,
        evaluation.results,
        processed.block_info.insertion_lines,
        engine,
        settings.number_format,
    )
    logger.debug(
        f"Processed block: {len(lines)} lines, "
        f"{len(scope_result.warnings)} warnings, error={evaluation.error!r}"
    )

    return BlockRender(
        processed=processed,
        evaluation=evaluation,
        lines=lines,
        scope=dict(scope),
        warnings=scope_result.warnings,
        updated_rows=updated_rows,
        hide_lines_without_markup=settings.hide_lines_without_markup_when_emitting,
    )
