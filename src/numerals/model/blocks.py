"""Block-level containers: preprocessing output, evaluation output, line data."""

from __future__ import annotations

import re
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, model_validator


class StringReplaceRule(BaseModel):
    """An ordered text substitution applied after directive rewriting.

    *replacement* uses Python ``re.sub`` syntax (``\\1`` for groups).
    """

    pattern: re.Pattern[str]
    replacement: str

    def apply(self, text: str) -> str:
        return self.pattern.sub(self.replacement, text)


class BlockInfo(BaseModel):
    """Line classification extracted from a raw block."""

    emitter_lines: list[int] = []
    insertion_lines: list[int] = []
    hidden_lines: list[int] = []
    hide_non_emitter_lines: bool = False


class ProcessedBlock(BaseModel):
    """Result of preprocessing a block.

    *raw_rows* are the authored lines, unmodified. *processed_source* is
    directive-free text with one evaluable expression per line.
    """

    raw_rows: list[str]
    processed_source: str
    block_info: BlockInfo


class EvaluationResult(BaseModel):
    """Outcome of evaluating a processed block row by row.

    ``results`` and ``inputs`` are parallel and stop at the first failure.
    ``results`` may hold ``None`` for blank or comment-only rows.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    results: list[Any] = []
    inputs: list[str] = []
    error: Exception | None = None
    offending_row: str = ""

    @model_validator(mode="after")
    def _check_parallel(self) -> Self:
        if len(self.results) != len(self.inputs):
            raise ValueError(
                f"results ({len(self.results)}) and inputs "
                f"({len(self.inputs)}) must have the same length"
            )
        if self.error is None and self.offending_row:
            raise ValueError("offending_row requires an error")
        return self


class LineRenderData(BaseModel):
    """Everything a renderer needs to draw one evaluated line."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    index: int
    raw_input: str
    processed_input: str
    result: Any = None
    is_empty: bool
    is_emitter: bool
    is_hidden: bool
    comment: str | None = None
