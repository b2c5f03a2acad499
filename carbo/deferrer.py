"""A mix-in that collects callbacks to run once a piece of work has finished."""

from __future__ import annotations

from collections.abc import Callable


class Deferrer:
    """Collects functions and calls them, in registration order, on request."""

    def __init__(self) -> None:
        self._deferred: list[Callable[[], object]] = []

    def defer(self, fn: Callable[[], object]) -> None:
        """Register ``fn`` to be called by :meth:`run_deferred`."""
        self._deferred.append(fn)

    def run_deferred(self) -> None:
        """Call every registered function in the order it was registered."""
        for fn in self._deferred:
            fn()