"""Sources: tasks that start a data pipeline.

A source ignores its input, which is closed as soon as the pipeline starts,
and feeds elements to its output.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from carbo import task as _task
from carbo.channel import Channel, ChannelClosed, duplicate_out_chan, run_group

SourceFn = Callable[[Channel], Awaitable[None]]


def from_fn(fn: SourceFn, **kwargs: Any) -> _task.Task:
    """Build a source from an async function that sends elements to ``out``.

    ``fn`` must not close ``out``; it is closed once ``fn`` returns.
    Keyword arguments are passed to :func:`carbo.task.from_fn`.
    """

    async def run(inp: Channel, out: Channel) -> None:
        try:
            await inp.receive()
        except ChannelClosed:
            pass
        try:
            await fn(out)
        finally:
            out.close()

    return _task.from_fn(run, **kwargs)


class SourceOp:
    """A source operator that can be turned into a source task."""

    def __init__(self, fn: SourceFn) -> None:
        self.fn = fn

    def as_source(self, **kwargs: Any) -> _task.Task:
        """Build a source task from this operator."""
        return from_fn(self.fn, **kwargs)

    def as_task(self, **kwargs: Any) -> _task.Task:
        """Build a task from this operator."""
        return self.as_source(**kwargs)


def from_slice(items: Iterable[Any]) -> SourceOp:
    """A source that emits the given items in order."""

    async def run(out: Channel) -> None:
        for item in items:
            await _task.emit(out, item)

    return SourceOp(run)


def from_chan(channel: Channel) -> SourceOp:
    """A source that emits every item received from ``channel`` until it is closed."""

    async def run(out: Channel) -> None:
        async for item in channel:
            await _task.emit(out, item)

    return SourceOp(run)


def concurrent(sources: Iterable[_task.Task], **kwargs: Any) -> _task.Task:
    """Run several sources concurrently and merge their outputs, in no fixed order."""
    sources = list(sources)

    async def run(out: Channel) -> None:
        outs, aggregate = duplicate_out_chan(out, len(sources))

        async def run_one(src: _task.Task, dest: Channel) -> None:
            inp: Channel = Channel()
            inp.close()
            await src.run(inp, dest)

        await run_group(
            *(run_one(src, dest) for src, dest in zip(sources, outs)), aggregate()
        )

    return from_fn(run, **kwargs)