"""Caching of function results, keyed by their argument.

A :class:`Spec` ties a store to a key function and to a way of encoding
results. :func:`run` calls an async function through that spec, with the
behavior chosen by the :class:`StoreKey` the key function returns.
"""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from carbo.marshal import Spec as MarshalingSpec
from carbo.store import Hit, Store, hit

CacheableFn = Callable[[Any], Awaitable[Any]]


class BehaviorType(enum.IntEnum):
    """How a cached function call treats the store."""

    CACHE = 0
    WRITE_ONLY = 1
    BYPASS = 2


@dataclass(frozen=True)
class StoreKey:
    """A key into a cache store, together with the behavior to apply."""

    key: Any = None
    behavior: BehaviorType = BehaviorType.CACHE


def key(value: Any) -> StoreKey:
    """A key with normal caching: return a cached result, or compute and store it."""
    return StoreKey(value, BehaviorType.CACHE)


def write_only_key(value: Any) -> StoreKey:
    """A key that always computes the result and stores it, overwriting any cached one."""
    return StoreKey(value, BehaviorType.WRITE_ONLY)


def bypass() -> StoreKey:
    """A key that always computes the result and never touches the store."""
    return StoreKey(None, BehaviorType.BYPASS)


def identity_key(el: Any) -> StoreKey:
    """A key function that uses the argument itself as a normal cache key."""
    return key(el)


class Spec(ABC):
    """How results are keyed, encoded and stored."""

    @abstractmethod
    def key(self, el: Any) -> StoreKey:
        """Return the store key for an argument."""

    @abstractmethod
    def encode(self, value: Any) -> Any:
        """Turn a result into the value kept in the store."""

    @abstractmethod
    def decode(self, value: Any) -> Any:
        """Turn a stored value back into a result."""

    @abstractmethod
    async def get(self, key: Any) -> Hit | None:
        """Look up a stored value."""

    @abstractmethod
    async def set(self, key: Any, value: Any) -> None:
        """Store a value."""


class RawSpec(Spec):
    """A spec that stores results as they are, for example in memory."""

    def __init__(self, store: Store, key_fn: Callable[[Any], StoreKey]) -> None:
        self.store = store
        self.key_fn = key_fn

    def key(self, el: Any) -> StoreKey:
        return self.key_fn(el)

    def encode(self, value: Any) -> Any:
        return value

    def decode(self, value: Any) -> Any:
        return value

    async def get(self, key: Any) -> Hit | None:
        return await self.store.get(key)

    async def set(self, key: Any, value: Any) -> None:
        await self.store.set(key, value)


class MarshalSpec(Spec):
    """A spec that stores results as bytes produced by a marshaling spec."""

    def __init__(
        self,
        store: Store,
        key_fn: Callable[[Any], StoreKey],
        value_spec: MarshalingSpec,
    ) -> None:
        self.store = store
        self.key_fn = key_fn
        self.value_spec = value_spec

    def key(self, el: Any) -> StoreKey:
        return self.key_fn(el)

    def encode(self, value: Any) -> bytes:
        return self.value_spec.marshal(value)

    def decode(self, data: bytes) -> Any:
        return self.value_spec.unmarshal(data)

    async def get(self, key: Any) -> Hit | None:
        return await self.store.get(key)

    async def set(self, key: Any, value: Any) -> None:
        await self.store.set(key, value)


@dataclass
class Entry:
    """One key of a spec's store, seen in terms of decoded results."""

    spec: Spec
    key: Any

    async def get(self) -> Hit | None:
        """Return the decoded cached result as a hit, or ``None`` on a miss."""
        stored = await self.spec.get(self.key)
        if stored is None:
            return None
        return hit(self.spec.decode(stored.value))

    async def set(self, value: Any) -> None:
        """Encode and store a result."""
        await self.spec.set(self.key, self.spec.encode(value))


@dataclass
class CacheBehavior:
    """Return a cached result if there is one; otherwise compute and store it."""

    entry: Any

    async def run(self, arg: Any, fn: CacheableFn) -> Any:
        cached = await self.entry.get()
        if cached is not None:
            return cached.value
        result = await fn(arg)
        await self.entry.set(result)
        return result


@dataclass
class WriteOnlyBehavior:
    """Always compute the result and store it."""

    entry: Any

    async def run(self, arg: Any, fn: CacheableFn) -> Any:
        result = await fn(arg)
        await self.entry.set(result)
        return result


@dataclass
class BypassBehavior:
    """Always compute the result without touching the store."""

    entry: Any

    async def run(self, arg: Any, fn: CacheableFn) -> Any:
        return await fn(arg)


def new_behavior(
    entry: Any, behavior_type: Any
) -> CacheBehavior | WriteOnlyBehavior | BypassBehavior:
    """Create the behavior for ``behavior_type``; unknown types fall back to caching."""
    if behavior_type == BehaviorType.WRITE_ONLY:
        return WriteOnlyBehavior(entry)
    if behavior_type == BehaviorType.BYPASS:
        return BypassBehavior(entry)
    return CacheBehavior(entry)


async def run(spec: Spec, arg: Any, fn: CacheableFn) -> Any:
    """Call ``fn(arg)`` with caching as defined by ``spec`` and the key for ``arg``."""
    store_key = spec.key(arg)
    behavior = new_behavior(Entry(spec, store_key.key), store_key.behavior)
    return await behavior.run(arg, fn)