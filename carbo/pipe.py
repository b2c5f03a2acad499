"""Pipes: tasks that sit between two other tasks and transform elements.

A pipe receives elements from its upstream through its input channel and
feeds results to its downstream through its output channel, which is closed
automatically once the pipe's function returns.
"""

from __future__ import annotations

import contextvars
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from carbo import task as _task
from carbo.channel import Channel, duplicate_out_chan, run_group

PipeFn = Callable[[Channel, Channel], Awaitable[None]]

_NO_PIPES = "at least 1 concurrent pipe is required"

_concurrency_index: contextvars.ContextVar[int] = contextvars.ContextVar(
    "carbo_concurrency_index", default=-1
)


def concurrency_index() -> int:
    """Return the index of the concurrent pipe running the caller, or -1 outside one."""
    return _concurrency_index.get()


def from_fn(fn: PipeFn, **kwargs: Any) -> _task.Task:
    """Build a pipe from an async function ``fn(inp, out)``.

    ``fn`` must close neither channel: ``out`` is closed once ``fn`` returns.
    Input left unread when ``fn`` returns is consumed and discarded so that
    the upstream is never left blocked. Keyword arguments are passed to
    :func:`carbo.task.from_fn`.
    """

    async def run(inp: Channel, out: Channel) -> None:
        try:
            await fn(inp, out)
        finally:
            out.close()
        async for _ in inp:
            pass

    return _task.from_fn(run, **kwargs)


class PipeOp:
    """A pipe operator that can be turned into a pipe task."""

    def __init__(self, fn: PipeFn) -> None:
        self.fn = fn

    def as_pipe(self, **kwargs: Any) -> _task.Task:
        """Build a pipe task from this operator."""
        return from_fn(self.fn, **kwargs)

    def as_task(self, **kwargs: Any) -> _task.Task:
        """Build a task from this operator."""
        return self.as_pipe(**kwargs)

    def concurrent(self, concurrency: int, **kwargs: Any) -> _task.Task:
        """A pipe running ``concurrency`` copies of this operator; order is not kept."""
        return concurrent_from_fn(self.fn, concurrency, **kwargs)


def batch(size: int) -> PipeOp:
    """A pipe that groups elements into lists of ``size``; the last may be shorter."""

    async def run(inp: Channel, out: Channel) -> None:
        current: list[Any] = []
        async for el in inp:
            current.append(el)
            if len(current) < size:
                continue
            await _task.emit(out, current)
            current = []
        if current:
            await _task.emit(out, current)

    return PipeOp(run)


def select(predicate: Callable[[Any], bool]) -> PipeOp:
    """A pipe that emits only the elements for which ``predicate`` is true."""

    async def run(inp: Channel, out: Channel) -> None:
        async for el in inp:
            if predicate(el):
                await _task.emit(out, el)

    return PipeOp(run)


def flatten() -> PipeOp:
    """A pipe that receives sequences and emits their elements one by one."""

    async def run(inp: Channel, out: Channel) -> None:
        async for els in inp:
            for el in els:
                await _task.emit(out, el)

    return PipeOp(run)


def take(n: int) -> PipeOp:
    """A pipe that emits only the first ``n`` elements from its upstream."""

    async def run(inp: Channel, out: Channel) -> None:
        count = 0
        async for el in inp:
            await _task.emit(out, el)
            count += 1
            if count == n:
                break

    return PipeOp(run)


def concurrent(pipes: Iterable[_task.Task], **kwargs: Any) -> _task.Task:
    """Run several pipes concurrently on one shared input and merge their outputs.

    Each input goes to whichever pipe is free, so the order is not preserved.
    """
    pipes = list(pipes)
    if not pipes:
        raise ValueError(_NO_PIPES)

    async def run(inp: Channel, out: Channel) -> None:
        outs, aggregate = duplicate_out_chan(out, len(pipes))

        async def run_one(index: int, pipe: _task.Task, dest: Channel) -> None:
            _concurrency_index.set(index)
            await pipe.run(inp, dest)

        await run_group(
            *(
                run_one(index, pipe, dest)
                for index, (pipe, dest) in enumerate(zip(pipes, outs))
            ),
            aggregate(),
        )

    return from_fn(run, **kwargs)


def concurrent_from_fn(fn: PipeFn, concurrency: int, **kwargs: Any) -> _task.Task:
    """Run ``concurrency`` pipes built from ``fn`` concurrently."""
    count = max(concurrency, 0)
    return concurrent([from_fn(fn, **kwargs) for _ in range(count)])