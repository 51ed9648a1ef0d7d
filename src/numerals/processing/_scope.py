"""Binding environments and the per-note persistent-binding cache."""

from __future__ import annotations

from collections.abc import Iterator, Mapping

from numerals.engine import GLOBAL_PREFIX


def is_persistent(key: str) -> bool:
    """Persistent (note-global) bindings are named ``$something``."""
    return key.startswith(GLOBAL_PREFIX)


class Scope(dict):
    """Variable and function bindings threaded through evaluation.

    A plain ``dict`` keyed by name; the block evaluator mutates it row to
    row, the inline evaluator works on a :meth:`clone`.
    """

    def clone(self) -> Scope:
        return Scope(self)

    def persistent(self) -> dict[str, object]:
        """Only the ``$``-prefixed bindings."""
        return {k: v for k, v in self.items() if is_persistent(k)}


class ScopeCache:
    """Persistent bindings per note, keyed by note identifier.

    The host owns one cache and passes it to every call that reads or
    writes note globals. No locking: the host serializes writers.
    """

    def __init__(self) -> None:
        self._notes: dict[str, Scope] = {}

    def get(self, note_id: str) -> Scope | None:
        return self._notes.get(note_id)

    def merge(self, note_id: str, bindings: Mapping[str, object]) -> Scope:
        """Merge *bindings* into the note's entry, creating it if needed."""
        note_scope = self._notes.setdefault(note_id, Scope())
        note_scope.update(bindings)
        return note_scope

    def clear(self, note_id: str | None = None) -> None:
        """Forget one note, or every note when *note_id* is ``None``."""
        if note_id is None:
            self._notes.clear()
        else:
            self._notes.pop(note_id, None)

    def __contains__(self, note_id: object) -> bool:
        return note_id in self._notes

    def __iter__(self) -> Iterator[str]:
        return iter(self._notes)

    def __len__(self) -> int:
        return len(self._notes)


def merge_globals(note_id: str, globals_map: Mapping[str, object], cache: ScopeCache) -> None:
    """Merge newly produced persistent bindings into the note's cache entry.

    Bookkeeping only; nothing is evaluated. An empty map leaves the cache
    untouched.
    """
    if globals_map:
        cache.merge(note_id, globals_map)


def globals_from_scope(scope: Mapping[str, object]) -> dict[str, object]:
    return {k: v for k, v in scope.items() if is_persistent(k)}


def add_globals_from_scope(note_id: str, scope: Mapping[str, object], cache: ScopeCache) -> None:
    """Copy every ``$``-prefixed binding of *scope* into the note's cache entry."""
    merge_globals(note_id, globals_from_scope(scope), cache)
