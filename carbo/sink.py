"""Sinks: tasks that end a data pipeline.

A sink consumes elements from its input and produces no output; its output
is closed without anything being sent.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from carbo import task as _task
from carbo.channel import Channel, run_group

SinkFn = Callable[[Channel], Awaitable[None]]
ElementWiseFn = Callable[[Any], Awaitable[None]]

_NO_SINKS = "at least 1 concurrent sink is required"


def from_fn(fn: SinkFn, **kwargs: Any) -> _task.Task:
    """Build a sink from an async function that consumes ``inp``.

    ``fn`` must not close its input. Keyword arguments are passed to
    :func:`carbo.task.from_fn`.
    """

    async def run(inp: Channel, out: Channel) -> None:
        try:
            await fn(inp)
        finally:
            out.close()

    return _task.from_fn(run, **kwargs)


class SinkOp:
    """A sink operator that can be turned into a sink task."""

    def __init__(self, fn: SinkFn) -> None:
        self.fn = fn

    def as_sink(self, **kwargs: Any) -> _task.Task:
        """Build a sink task from this operator."""
        return from_fn(self.fn, **kwargs)

    def as_task(self, **kwargs: Any) -> _task.Task:
        """Build a task from this operator."""
        return self.as_sink(**kwargs)


class ElementWiseOp(SinkOp):
    """A sink that calls an async function for each element, one at a time."""

    def __init__(self, fn: ElementWiseFn) -> None:
        self.element_fn = fn
        super().__init__(self._consume)

    async def _consume(self, inp: Channel) -> None:
        async for el in inp:
            await self.element_fn(el)

    def concurrent(self, concurrency: int) -> _task.Task:
        """A sink running ``concurrency`` copies of this operator on a shared input."""
        return concurrent_from_fn(self._consume, concurrency)


class ToChanOp(ElementWiseOp):
    """A sink that sends every element to a channel and closes it when done."""

    def __init__(self, channel: Channel) -> None:
        self.channel = channel

        async def send(el: Any) -> None:
            await _task.emit(channel, el)

        super().__init__(send)

    def as_sink(self, **kwargs: Any) -> _task.Task:
        sink = super().as_sink(**kwargs)
        sink.defer(self.channel.close)
        return sink


def element_wise(fn: ElementWiseFn) -> ElementWiseOp:
    """Create an element-wise sink from an async function of one element."""
    return ElementWiseOp(fn)


def to_slice(items: list) -> ElementWiseOp:
    """A sink that appends every element to ``items``."""

    async def append(el: Any) -> None:
        items.append(el)

    return ElementWiseOp(append)


def to_chan(channel: Channel) -> ToChanOp:
    """A sink that forwards every element to ``channel``."""
    return ToChanOp(channel)


def concurrent(sinks: Iterable[_task.Task], **kwargs: Any) -> _task.Task:
    """Run several sinks concurrently on one shared input."""
    sinks = list(sinks)
    if not sinks:
        raise ValueError(_NO_SINKS)

    async def run(inp: Channel) -> None:
        await run_group(*(sink.run(inp, Channel()) for sink in sinks))

    return from_fn(run, **kwargs)


def concurrent_from_fn(fn: SinkFn, concurrency: int, **kwargs: Any) -> _task.Task:
    """Run ``concurrency`` sinks built from ``fn`` concurrently."""
    count = max(concurrency, 0)
    return concurrent([from_fn(fn, **kwargs) for _ in range(count)])