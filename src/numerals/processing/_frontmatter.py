"""Frontmatter properties -> scope bindings.

Which properties are processed is controlled by the ``numerals`` property:

- ``numerals: all`` processes every property
- ``numerals: none`` processes none (also the default)
- ``numerals: key`` processes only ``key``
- ``numerals: [key1, key2]`` processes the listed keys

Properties named ``$something`` are always processed. Numbers are bound
directly; strings are evaluated as expressions, in whatever order lets
forward references resolve.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, MutableMapping, Sequence
from dataclasses import dataclass
from numbers import Number

from numerals.engine import AlgebraEngine, default_engine, normalize_number
from numerals.errors import NumeralsError
from numerals.model.blocks import StringReplaceRule
from numerals.model.frontmatter import FrontmatterProcessingWarning, PropertyKind, ScopeResult

from ._preprocessor import apply_rules
from ._scope import Scope, is_persistent

logger = logging.getLogger(__name__)

CONTROL_PROPERTY = "numerals"

_FUNCTION_KEY_RE = re.compile(r"^([^(]+)\(([^)]*)\)$")

_IGNORED_METADATA_KEYS = frozenset({"position", "file"})


@dataclass(frozen=True)
class _PendingExpression:
    key: str
    raw_value: object
    text: str
    function_name: str | None = None
    function_params: str = ""


# ---------------------------------------------------------------------------
# Selection and classification
# ---------------------------------------------------------------------------

def select_properties(properties: Mapping[str, object], force_all: bool = False) -> dict[str, object]:
    """Pick the properties to bind, per the ``numerals`` control property.

    *force_all* only applies when the control property is absent.
    ``$``-prefixed properties are always selected.
    """
    selected: dict[str, object] = {}
    if CONTROL_PROPERTY in properties:
        control = properties[CONTROL_PROPERTY]
        if control == "none":
            pass
        elif control == "all":
            selected = {k: v for k, v in properties.items() if k != CONTROL_PROPERTY}
        elif isinstance(control, str):
            if control in properties:
                selected[control] = properties[control]
        elif isinstance(control, (list, tuple)):
            for key in control:
                if isinstance(key, str) and key in properties:
                    selected[key] = properties[key]
    elif force_all:
        selected = dict(properties)

    for key, value in properties.items():
        if is_persistent(key):
            selected[key] = value
    return selected


def classify_property(value: object, engine: AlgebraEngine) -> PropertyKind:
    """Sort an arbitrary property value into a :class:`PropertyKind`.

    Booleans, ``None``, mappings and anything else unrecognized are
    ``STRUCTURED``.
    """
    if engine.is_quantity(value):
        return PropertyKind.QUANTITY
    if isinstance(value, bool):
        return PropertyKind.STRUCTURED
    if isinstance(value, Number) and not isinstance(value, complex):
        return PropertyKind.NUMBER
    if isinstance(value, str):
        return PropertyKind.TEXT
    if isinstance(value, (list, tuple)):
        return PropertyKind.LIST
    if callable(value):
        return PropertyKind.FUNCTION
    return PropertyKind.STRUCTURED


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def _pending_from_text(key: str, raw_value: object, text: str) -> _PendingExpression:
    m = _FUNCTION_KEY_RE.match(key)
    if m is not None:
        return _PendingExpression(
            key=key,
            raw_value=raw_value,
            text=text,
            function_name=m.group(1).strip(),
            function_params=m.group(2),
        )
    return _PendingExpression(key=key, raw_value=raw_value, text=text)


def _bind_pending(item: _PendingExpression, scope: MutableMapping[str, object], engine: AlgebraEngine) -> None:
    """Evaluate one pending expression and bind it. Engine errors propagate."""
    if item.function_name is not None:
        definition = f"{item.function_name}({item.function_params}) = {item.text}"
        scope[item.function_name] = engine.evaluate(definition, scope)
        return
    value = engine.evaluate(item.text, scope)
    if value is not None:
        scope[item.key] = value


def _resolve_pending(
    pending: list[_PendingExpression],
    scope: MutableMapping[str, object],
    engine: AlgebraEngine,
) -> list[FrontmatterProcessingWarning]:
    """Fixed-point evaluation of string properties.

    Passes over the worklist until one makes no progress, then tries each
    leftover once more and reports its failure. At most ``len(pending)``
    productive passes can happen.
    """
    passes = 0
    progress = True
    while pending and progress:
        passes += 1
        progress = False
        still_pending: list[_PendingExpression] = []
        for item in pending:
            try:
                _bind_pending(item, scope, engine)
            except Exception:
                still_pending.append(item)
            else:
                progress = True
        pending = still_pending
    logger.debug(f"Frontmatter fixed point reached after {passes} passes, {len(pending)} unresolved")

    warnings: list[FrontmatterProcessingWarning] = []
    for item in pending:
        try:
            _bind_pending(item, scope, engine)
        except Exception as exc:
            kind = "function" if item.function_name is not None else "expression"
            detail = exc.message if isinstance(exc, NumeralsError) else str(exc)
            warnings.append(FrontmatterProcessingWarning(
                key=item.key,
                raw_value=item.raw_value,
                message=f"error evaluating {kind}: {detail}",
            ))
    return warnings


def resolve_frontmatter_scope(
    properties: Mapping[str, object] | None,
    scope: MutableMapping[str, object] | None = None,
    force_all: bool = False,
    rules: Sequence[StringReplaceRule] = (),
    keys_only: bool = False,
    engine: AlgebraEngine | None = None,
) -> ScopeResult:
    """Build scope bindings from a note's merged property bag.

    Parameters
    ----------
    properties : Mapping, optional
        Merged frontmatter/metadata. ``None`` yields an empty result.
    scope : MutableMapping, optional
        Existing bindings to add to; a new :class:`Scope` when omitted.
    force_all : bool
        Process every property when there is no ``numerals`` property.
    rules : sequence of StringReplaceRule
        Applied to string values before evaluation.
    keys_only : bool
        Bind each selected key to ``None`` without evaluating anything.
    engine : AlgebraEngine, optional
        Defaults to the shared engine.

    Returns
    -------
    ScopeResult
        The scope and a warning per property that could not be bound.
        Property content never raises.
    """
    if scope is None:
        scope = Scope()
    if engine is None:
        engine = default_engine()
    if not properties:
        return ScopeResult(scope=scope, warnings=[])

    selected = select_properties(properties, force_all)

    if keys_only:
        for key in selected:
            scope[key] = None
        return ScopeResult(scope=scope, warnings=[])

    warnings: list[FrontmatterProcessingWarning] = []
    pending: list[_PendingExpression] = []

    for key, raw_value in selected.items():
        value = raw_value
        kind = classify_property(value, engine)
        # Append-only metadata histories: the latest entry wins
        while kind is PropertyKind.LIST and value:
            value = value[-1]
            kind = classify_property(value, engine)

        if kind is PropertyKind.LIST:
            warnings.append(FrontmatterProcessingWarning(
                key=key, raw_value=raw_value, message="list is empty and will be ignored",
            ))
        elif kind is PropertyKind.NUMBER:
            scope[key] = normalize_number(value)
        elif kind is PropertyKind.QUANTITY:
            scope[key] = engine.magnitude(value)
        elif kind is PropertyKind.TEXT:
            pending.append(_pending_from_text(key, raw_value, apply_rules(value, rules)))
        elif kind is PropertyKind.FUNCTION:
            scope[key] = value
        elif kind is PropertyKind.STRUCTURED:
            warnings.append(FrontmatterProcessingWarning(
                key=key,
                raw_value=raw_value,
                message=(
                    "value is an object and will be ignored. Consider surrounding "
                    f'the value with quotes (e.g. `{key}: "value"`).'
                ),
            ))

    warnings.extend(_resolve_pending(pending, scope, engine))
    for warning in warnings:
        logger.warning(str(warning))
    return ScopeResult(scope=scope, warnings=warnings)


# ---------------------------------------------------------------------------
# Metadata merging
# ---------------------------------------------------------------------------

def _canonicalize(key: str) -> str:
    return re.sub(r"[^\w-]", "", re.sub(r"\s+", "-", key)).lower()


def remove_canonicalized_duplicates(metadata: Mapping[str, object]) -> dict[str, object]:
    """Drop phantom keys produced by canonicalizing other keys.

    Metadata indexers often add a normalized copy of each key (``f(x)`` ->
    ``fx``); those copies shadow function definitions and are removed.
    """
    phantoms = {_canonicalize(k) for k in metadata if _canonicalize(k) != k}
    return {k: v for k, v in metadata.items() if k not in phantoms}


def merge_metadata(
    frontmatter: Mapping[str, object] | None,
    secondary: Mapping[str, object] | None = None,
    note_scope: Mapping[str, object] | None = None,
) -> dict[str, object]:
    """Combine a note's property sources into one bag.

    *secondary* (e.g. inline fields) wins over *frontmatter*, and the
    note's cached persistent bindings win over both.
    """
    metadata = {k: v for k, v in (frontmatter or {}).items() if k not in _IGNORED_METADATA_KEYS}
    if secondary:
        cleaned = {k: v for k, v in secondary.items() if k not in _IGNORED_METADATA_KEYS}
        metadata.update(remove_canonicalized_duplicates(cleaned))
    if note_scope:
        metadata.update(note_scope)
    return metadata
