"""Directive recognizers and rewriters.

Authors annotate block lines with directives:

- ``=>`` after an expression marks an *emitter* line
- ``@[name]`` / ``@[name::value]`` marks a *result insertion* line
- ``@sum`` / ``@total`` refer to the rolling total of the rows above
- ``@prev`` refers to the previous row's result
- ``@hideRows`` on its own line hides every non-emitter line
- ``@createUnit`` on its own line is hidden from display

Each recognizer works on a single raw line; each rewriter works on whole
text. Neither ever raises: text that doesn't match is left as is.
"""

from __future__ import annotations

import re

PREVIOUS_VALUE_VARIABLE = "__prev"
ROLLING_TOTAL_VARIABLE = "__total"

EMITTER_DIRECTIVE = "=>"
HIDE_ROWS_DIRECTIVE = "@hideRows"
CREATE_UNIT_DIRECTIVE = "@createUnit"

_EMITTER_LINE_RE = re.compile(r"^[^#\r\n]*=>.*$")
_INSERTION_LINE_RE = re.compile(r"@\s*\[([^\]:]+)(::)?([^\]]*)\].*$")
_HIDE_ROWS_LINE_RE = re.compile(r"^\s*@hideRows\s*$")
_CREATE_UNIT_LINE_RE = re.compile(r"^\s*@createUnit\s*$")
_ROLLING_TOTAL_DIRECTIVE_RE = re.compile(r"@(?:sum|total)\b", re.IGNORECASE)
_PREVIOUS_VALUE_DIRECTIVE_RE = re.compile(r"@prev\b", re.IGNORECASE)

_EMITTER_STRIP_RE = re.compile(r"^([^#\r\n]*?)([\t ]*=>[\t ]*)(\$\{.*\})?(.*)$", re.MULTILINE)
_INSERTION_STRIP_RE = re.compile(r"@\s*\[([^\]:]+)(::[^\]]*)?\](.*)$", re.MULTILINE)
_INSERTION_VALUE_RE = re.compile(r"(@\s*\[)([^\]:]+)(::([^\]]*))?(\].*)$")
# [ \t] rather than \s so a blanked directive never swallows a neighbouring line
_HIDE_ROWS_STRIP_RE = re.compile(r"^[ \t]*@hideRows", re.IGNORECASE | re.MULTILINE)
_CREATE_UNIT_STRIP_RE = re.compile(r"^[ \t]*@createUnit[ \t]*(?=\r?$)", re.MULTILINE)

_PREVIOUS_VALUE_REF_RE = re.compile(rf"\b{PREVIOUS_VALUE_VARIABLE}\b", re.IGNORECASE)
_ROLLING_TOTAL_REF_RE = re.compile(rf"\b{ROLLING_TOTAL_VARIABLE}\b", re.IGNORECASE)
_RESTORE_TOTAL_RE = re.compile(r"(__total|\\_\\_total)\b")


# ---------------------------------------------------------------------------
# Line recognizers
# ---------------------------------------------------------------------------

def is_emitter_line(line: str) -> bool:
    """``=>`` appears before any ``#`` comment."""
    return _EMITTER_LINE_RE.match(line) is not None


def is_insertion_line(line: str) -> bool:
    return _INSERTION_LINE_RE.search(line) is not None


def insertion_target(line: str) -> str | None:
    """The variable name inside ``@[name::value]``, stripped of whitespace."""
    m = _INSERTION_LINE_RE.search(line)
    return m.group(1).strip() if m else None


def is_hide_rows_line(line: str) -> bool:
    return _HIDE_ROWS_LINE_RE.match(line) is not None


def is_create_unit_line(line: str) -> bool:
    return _CREATE_UNIT_LINE_RE.match(line) is not None


def has_rolling_total_directive(line: str) -> bool:
    return _ROLLING_TOTAL_DIRECTIVE_RE.search(line) is not None


def has_previous_value_directive(line: str) -> bool:
    return _PREVIOUS_VALUE_DIRECTIVE_RE.search(line) is not None


def references_previous_value(row: str) -> bool:
    """A processed row uses the previous-value magic variable."""
    return _PREVIOUS_VALUE_REF_RE.search(row) is not None


def references_rolling_total(row: str) -> bool:
    """A processed row uses the rolling-total magic variable."""
    return _ROLLING_TOTAL_REF_RE.search(row) is not None


# ---------------------------------------------------------------------------
# Text rewriters
# ---------------------------------------------------------------------------

def strip_emitter_markup(text: str, keep_trailing: bool = False) -> str:
    """Remove ``=>`` markers.

    For evaluation everything from the marker on is dropped. With
    *keep_trailing* (display), text after the marker is kept.
    """
    return _EMITTER_STRIP_RE.sub(r"\1\4" if keep_trailing else r"\1", text)


def rewrite_insertions(text: str) -> str:
    """``@[name::old] = expr`` -> ``name = expr``."""
    return _INSERTION_STRIP_RE.sub(r"\1\3", text)


def rewrite_rolling_total(text: str) -> str:
    return _ROLLING_TOTAL_DIRECTIVE_RE.sub(ROLLING_TOTAL_VARIABLE, text)


def rewrite_previous_value(text: str) -> str:
    return _PREVIOUS_VALUE_DIRECTIVE_RE.sub(PREVIOUS_VALUE_VARIABLE, text)


def blank_hide_rows(text: str) -> str:
    return _HIDE_ROWS_STRIP_RE.sub("", text)


def blank_create_unit(text: str) -> str:
    return _CREATE_UNIT_STRIP_RE.sub("", text)


def write_insertion_value(line: str, formatted: str) -> str:
    """``@[name]`` / ``@[name::old]`` -> ``@[name::formatted]``."""
    return _INSERTION_VALUE_RE.sub(
        lambda m: f"{m.group(1)}{m.group(2)}::{formatted}{m.group(5)}", line
    )


def restore_sum_directive(processed: str, raw: str, replacement: str | None = None) -> str:
    """Put the author's ``@sum``/``@total`` spelling back in place of ``__total``.

    Occurrences are matched in order against the directives found in *raw*;
    extra occurrences fall back to ``@Sum``. A *replacement* overrides all.
    """
    if replacement is not None:
        return _RESTORE_TOTAL_RE.sub(lambda _m: replacement, processed)
    directives = _ROLLING_TOTAL_DIRECTIVE_RE.findall(raw)
    return _RESTORE_TOTAL_RE.sub(lambda _m: directives.pop(0) if directives else "@Sum", processed)
