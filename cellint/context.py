"""Accumulates names defined by the cells of one notebook run."""

from collections.abc import Iterable

from cellint.rules import base


class ContextAccumulator:
    """Set of names made visible by cells that have already been linted.

    The accumulator only grows during a run. Rules never see it directly:
    each cell receives an immutable :class:`~cellint.rules.base.AnalysisContext`
    taken with :meth:`snapshot` before the cell's rules run.
    """

    def __init__(self) -> None:
        """Start with no known names."""
        self._names: set[str] = set()

    def reset(self) -> None:
        """Forget every name; called at the start of each notebook run."""
        self._names.clear()

    def add(self, names: Iterable[str]) -> None:
        """Record *names* as defined."""
        self._names.update(names)

    def snapshot(self) -> base.AnalysisContext:
        """Return an immutable copy of the names known so far."""
        return base.AnalysisContext(defined_names=frozenset(self._names))

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __len__(self) -> int:
        return len(self._names)
