"""Map and tap pipes, including concurrent variants that keep the input order."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

from carbo import cache as _cache
from carbo import task as _task
from carbo.channel import Channel, ChannelClosed, run_group
from carbo.pipe import PipeOp, _concurrency_index, from_fn

MapFn = Callable[[Any], Awaitable[Any]]
TapFn = Callable[[Any], Awaitable[None]]

_NO_CONCURRENCY = "at least 1 concurrency is required"


async def _announce(
    index: int, ready: asyncio.Queue, channel: Channel
) -> AsyncIterator[Any]:
    """Yield items from ``channel``, announcing readiness before each receive."""
    while True:
        ready.put_nowait(index)
        try:
            item = await channel.receive()
        except ChannelClosed:
            return
        yield item


def _checked_bucket(index: int, concurrency: int) -> int:
    if not 0 <= index < concurrency:
        raise IndexError(
            f"bucket {index} is out of range for concurrency {concurrency}"
        )
    return index


class MapOp(PipeOp):
    """A pipe that turns each element into one output with an async function."""

    def __init__(self, fn: MapFn) -> None:
        self.map_fn = fn
        super().__init__(self._run)

    async def _run(self, inp: Any, out: Channel) -> None:
        async for el in inp:
            mapped = await self.map_fn(el)
            await _task.emit(out, mapped)

    def concurrent_preserving_order(self, concurrency: int, **kwargs: Any) -> _task.Task:
        """A pipe running ``concurrency`` copies of this map that keeps the input order.

        Each element goes to whichever copy is free.
        """
        return self._preserving_order(concurrency, None, **kwargs)

    def sticky_concurrent_preserving_order(
        self, bucket: Callable[[Any], int], concurrency: int, **kwargs: Any
    ) -> _task.Task:
        """Like :meth:`concurrent_preserving_order`, with ``bucket(el)`` choosing the copy.

        Inside the map function, :func:`carbo.pipe.concurrency_index` gives the
        index of the copy that runs it.
        """
        return self._preserving_order(concurrency, bucket, **kwargs)

    def _preserving_order(
        self,
        concurrency: int,
        bucket: Callable[[Any], int] | None,
        **kwargs: Any,
    ) -> _task.Task:
        if concurrency <= 0:
            raise ValueError(_NO_CONCURRENCY)

        async def run(inp: Channel, out: Channel) -> None:
            ins: list[Channel] = [Channel() for _ in range(concurrency)]
            outs: list[Channel] = [Channel(concurrency) for _ in range(concurrency)]
            order: Channel = Channel(concurrency)
            ready: asyncio.Queue[int] = asyncio.Queue()

            async def worker(index: int) -> None:
                _concurrency_index.set(index)
                try:
                    await self._run(_announce(index, ready, ins[index]), outs[index])
                finally:
                    outs[index].close()

            async def spread() -> None:
                try:
                    async for el in inp:
                        if bucket is None:
                            index = await ready.get()
                        else:
                            index = _checked_bucket(bucket(el), concurrency)
                        await _task.emit(ins[index], el)
                        await order.send(index)
                finally:
                    order.close()
                    for channel in ins:
                        channel.close()

            async def collect() -> None:
                async for index in order:
                    try:
                        el = await outs[index].receive()
                    except ChannelClosed:
                        return
                    await _task.emit(out, el)

            await run_group(
                *(worker(index) for index in range(concurrency)), spread(), collect()
            )

        return from_fn(run, **kwargs)


class TapOp(MapOp):
    """A pipe that passes elements through unchanged after calling a function on each."""

    def __init__(self, fn: TapFn) -> None:
        self.tap_fn = fn

        async def passthrough(el: Any) -> Any:
            await fn(el)
            return el

        super().__init__(passthrough)


def map_elements(fn: MapFn) -> MapOp:
    """Create a map pipe from an async function of one element."""
    return MapOp(fn)


def map_with_cache(fn: MapFn, spec: _cache.Spec) -> MapOp:
    """Create a map pipe whose results are cached as defined by ``spec``."""

    async def cached(el: Any) -> Any:
        return await _cache.run(spec, el, fn)

    return MapOp(cached)


def tap(fn: TapFn) -> TapOp:
    """Create a tap pipe, useful for side effects such as logging elements."""
    return TapOp(fn)