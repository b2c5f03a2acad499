"""Key-value stores used as cache backends."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Final, Generic, Protocol, TypeVar

V = TypeVar("V")


@dataclass(frozen=True)
class Hit(Generic[V]):
    """A cache hit carrying the stored value."""

    value: V


_MISS: Final[Hit[Any] | None] = None


def hit(value: V) -> Hit[V]:
    """A result that represents an existing cached value."""
    return Hit(value)


def miss() -> Hit[Any] | None:
    """A result that represents a cache miss."""
    return _MISS


class Store(Protocol):
    """A key-value cache store.

    ``get`` returns a :class:`Hit` for a stored key and ``None`` on a miss.
    """

    async def get(self, key: Any) -> Hit | None:
        """Return the cached value for ``key``, or ``None`` on a miss."""

    async def set(self, key: Any, value: Any) -> None:
        """Store ``value`` under ``key``."""


class MemoryStore:
    """A cache store that keeps values in memory."""

    def __init__(self) -> None:
        self._cache: dict[Any, Any] = {}

    async def get(self, key: Any) -> Hit | None:
        """Return the cached value for ``key`` as a hit, or ``None`` on a miss."""
        if key not in self._cache:
            return miss()
        return hit(self._cache[key])

    async def set(self, key: Any, value: Any) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        self._cache[key] = value