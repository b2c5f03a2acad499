"""A pipe that sends each input to several tasks and aggregates their results."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from carbo import task as _task
from carbo.channel import Channel, ChannelClosed, run_group
from carbo.pipe import PipeOp

FanoutAggregateFn = Callable[[list, Channel], Awaitable[None]]
FanoutMapFn = Callable[[list], Awaitable[Any]]


class _UnmatchingLengthError(RuntimeError):
    def __init__(self) -> None:
        super().__init__("unmatching length of outputs detected")


@dataclass
class _Subtask:
    task: _task.Task
    in_buffer: int
    out_buffer: int


class FanoutOp(PipeOp):
    """A pipe that feeds every input to all its downstream tasks.

    The results that those tasks produce from one input are passed, in the
    order the tasks were added, to the aggregate function, which sends
    outputs to the pipe's output channel.
    """

    def __init__(self, aggregate: FanoutAggregateFn) -> None:
        self.aggregate = aggregate
        self._subtasks: list[_Subtask] = []
        super().__init__(self._run)

    def add(self, task: _task.Task, in_buffer: int, out_buffer: int) -> None:
        """Register a downstream task with its input and output buffer sizes."""
        self._subtasks.append(_Subtask(task, in_buffer, out_buffer))

    async def _run(self, inp: Channel, out: Channel) -> None:
        subtasks = list(self._subtasks)
        inputs: list[Channel] = [Channel(sub.in_buffer) for sub in subtasks]
        outputs: list[Channel] = [Channel(sub.out_buffer) for sub in subtasks]
        finished = [asyncio.Event() for _ in subtasks]
        failures: list[Exception] = []
        stopping = False

        async def feed() -> None:
            try:
                async for el in inp:
                    await run_group(*(channel.send(el) for channel in inputs))
            except asyncio.CancelledError:
                if not stopping:
                    raise
            finally:
                for channel in inputs:
                    channel.close()

        feed_task = asyncio.ensure_future(feed())

        async def run_subtask(index: int) -> None:
            try:
                await subtasks[index].task.run(inputs[index], outputs[index])
            except Exception as exc:
                failures.append(exc)
                raise
            finally:
                finished[index].set()

        async def stop(closed: list[int]) -> None:
            nonlocal stopping
            stopping = True
            feed_task.cancel()
            for index in closed:
                await finished[index].wait()
            if failures:
                raise failures[0]
            raise _UnmatchingLengthError()

        async def emit() -> None:
            if not outputs:
                return
            while True:
                els: list[Any] = []
                closed: list[int] = []
                first_closed: bool | None = None
                for index, channel in enumerate(outputs):
                    try:
                        els.append(await channel.receive())
                        ok = True
                    except ChannelClosed:
                        closed.append(index)
                        ok = False
                    if first_closed is None:
                        first_closed = not ok
                    elif first_closed == ok:
                        await stop(closed)
                if first_closed:
                    return
                await self.aggregate(els, out)

        emit_task = asyncio.ensure_future(emit())
        sub_tasks = [asyncio.ensure_future(run_subtask(i)) for i in range(len(subtasks))]
        try:
            await run_group(emit_task, feed_task, *sub_tasks)
        except _UnmatchingLengthError:
            if failures:
                raise failures[0] from None
            raise


def fanout(aggregate: FanoutAggregateFn) -> FanoutOp:
    """Create a fanout pipe from an async ``aggregate(els, out)`` function."""
    return FanoutOp(aggregate)


def fanout_with_map(map_fn: FanoutMapFn) -> FanoutOp:
    """Create a fanout pipe that emits one output, ``await map_fn(els)``, per input."""

    async def aggregate(els: list, out: Channel) -> None:
        result = await map_fn(els)
        await _task.emit(out, result)

    return FanoutOp(aggregate)