"""Rewrite math-notation text into Python expression source.

The engine parses expressions with :mod:`ast`; this module bridges the
notation authors write and what ``ast.parse`` accepts:

- ``^`` becomes ``**``
- ``to`` becomes ``in`` (unit conversion, handled by the executor)
- implicit multiplication: ``5 m`` -> ``5 * m``, ``2(3 + 4)`` -> ``2 * (3 + 4)``
- ``$name`` persistent identifiers are mangled to valid Python names
- ``# comments`` are dropped
"""

from __future__ import annotations

import io
import keyword
import re
import tokenize

from numerals.errors import EngineError

GLOBAL_PREFIX = "$"
_MANGLED_PREFIX = "__global_"

_DOLLAR_NAME_RE = re.compile(r"\$(?=[A-Za-z_])")

# A number glued to a name ("5m", "2.5kg") but not an exponent ("1e5")
_NUMBER_BEFORE_NAME_RE = re.compile(
    r"(?<![\w.])((?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)(?=[A-Za-z_])(?![eE][+-]?\d)"
)

_FUNCTION_DEF_RE = re.compile(
    r"^\s*(\$?[A-Za-z_][A-Za-z0-9_]*)\s*\(([^()]*)\)\s*=(?!=)(.*)$",
    re.DOTALL,
)

_IDENTIFIER_RE = re.compile(r"^\$?[A-Za-z_][A-Za-z0-9_]*$")

_SKIPPED_TOKENS = frozenset({
    tokenize.COMMENT,
    tokenize.NL,
    tokenize.NEWLINE,
    tokenize.INDENT,
    tokenize.DEDENT,
    tokenize.ENDMARKER,
})


def mangle(name: str) -> str:
    """``$rate`` -> a valid Python identifier."""
    if name.startswith(GLOBAL_PREFIX):
        return _MANGLED_PREFIX + name[len(GLOBAL_PREFIX):]
    return name


def demangle(name: str) -> str:
    """Inverse of :func:`mangle`; scope keys always use the ``$`` form."""
    if name.startswith(_MANGLED_PREFIX):
        return GLOBAL_PREFIX + name[len(_MANGLED_PREFIX):]
    return name


def match_function_definition(text: str) -> tuple[str, list[str], str] | None:
    """Split ``f(x, y) = body`` into ``("f", ["x", "y"], "body")``.

    Returns ``None`` when *text* is not a function definition. Raises
    :class:`EngineError` for a definition with non-identifier parameters.
    """
    m = _FUNCTION_DEF_RE.match(text)
    if m is None:
        return None
    name, raw_params, body = m.group(1), m.group(2), m.group(3)
    params = [p.strip() for p in raw_params.split(",")] if raw_params.strip() else []
    for param in params:
        if not _IDENTIFIER_RE.match(param):
            raise EngineError(f'Invalid parameter "{param}" in definition of {name}')
    return name, params, body


def _is_name(tok_type: int, string: str) -> bool:
    return tok_type == tokenize.NAME and not keyword.iskeyword(string)


def _implies_multiplication(prev: tuple[int, str], tok_type: int, string: str) -> bool:
    prev_type, prev_string = prev
    ends_value = (
        prev_type == tokenize.NUMBER
        or _is_name(prev_type, prev_string)
        or prev_string == ")"
    )
    if not ends_value:
        return False
    if _is_name(tok_type, string):
        return True
    if string == "(":
        # name( is a call
        return prev_type != tokenize.NAME
    return False


def to_python_source(text: str) -> str:
    """Rewrite one expression (or ``;``-separated statements) for ``ast.parse``."""
    text = _DOLLAR_NAME_RE.sub(_MANGLED_PREFIX, text.strip())
    text = _NUMBER_BEFORE_NAME_RE.sub(r"\1 ", text)

    out: list[str] = []
    prev: tuple[int, str] | None = None
    try:
        for tok in tokenize.generate_tokens(io.StringIO(text).readline):
            if tok.type in _SKIPPED_TOKENS:
                continue
            if tok.type == tokenize.ERRORTOKEN:
                if tok.string.isspace():
                    continue
                raise EngineError(f'Unexpected character "{tok.string}"')
            string = tok.string
            if tok.type == tokenize.OP and string == "^":
                string = "**"
            elif tok.type == tokenize.NAME and string == "to":
                string = "in"
            if prev is not None and _implies_multiplication(prev, tok.type, string):
                out.append("*")
            out.append(string)
            prev = (tok.type, string)
    except (tokenize.TokenError, SyntaxError) as exc:
        raise EngineError(f"Syntax error: {exc.args[0]}") from exc
    return " ".join(out)
