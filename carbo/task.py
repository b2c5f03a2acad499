"""Tasks, the core building block of a data pipeline.

A task reads elements from an input channel and writes elements to an output
channel. A pipeline is usually shaped as source -> pipe -> ... -> pipe -> sink:
a source ignores its (immediately closed) input, a sink produces no output,
and pipes transform elements in between. Tasks are chained with
:func:`connect`, which itself returns a task.
"""

from __future__ import annotations

import asyncio
import contextvars
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any

from carbo.channel import Channel, ChannelClosed, run_group
from carbo.deferrer import Deferrer

ANONYMOUS_NAME = "<Anonymous Task>"

TaskFn = Callable[[Channel, Channel], Awaitable[None]]

_current_name: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "carbo_task_name", default=None
)


def get_name() -> str:
    """Return the name of the closest running task, or a placeholder if it has none."""
    name = _current_name.get()
    return ANONYMOUS_NAME if name is None else name


def _timeout(value: float | None) -> float | None:
    if value is None or value <= 0:
        return None
    return float(value)


class Task(Deferrer):
    """A pipeline component driven by an async function ``fn(inp, out)``.

    ``fn`` must close ``out`` when it finishes. ``input_timeout`` bounds each
    receive from the input, ``output_timeout`` each send to the output, in
    seconds; exceeding either raises ``TimeoutError`` from :meth:`run`.
    """

    def __init__(
        self,
        fn: TaskFn,
        *,
        name: str | None = None,
        input_timeout: float | None = None,
        output_timeout: float | None = None,
    ) -> None:
        super().__init__()
        self.fn = fn
        self.name = name
        self.input_timeout = _timeout(input_timeout)
        self.output_timeout = _timeout(output_timeout)

    def as_task(self) -> Task:
        return self

    def defer(self, fn: Callable[[], Any]) -> None:
        """Register ``fn`` to be called just before :meth:`run` returns."""
        super().defer(fn)

    async def run(self, inp: Channel, out: Channel) -> None:
        """Run the task; registered deferred functions run just before it returns."""
        token = _current_name.set(self.name)
        try:
            inner_in: Channel = Channel()
            inner_out: Channel = Channel()
            await run_group(
                self._forward_input(inp, inner_in),
                self.fn(inner_in, inner_out),
                self._forward_output(inner_out, out),
            )
        finally:
            _current_name.reset(token)
            self.run_deferred()

    async def _forward_input(self, src: Channel, dest: Channel) -> None:
        try:
            while True:
                async with asyncio.timeout(self.input_timeout):
                    try:
                        item = await src.receive()
                    except ChannelClosed:
                        return
                    await dest.send(item)
        finally:
            dest.close()

    async def _forward_output(self, src: Channel, dest: Channel) -> None:
        try:
            while True:
                try:
                    item = await src.receive()
                except ChannelClosed:
                    return
                async with asyncio.timeout(self.output_timeout):
                    await dest.send(item)
        finally:
            dest.close()


def from_fn(
    fn: TaskFn,
    *,
    name: str | None = None,
    input_timeout: float | None = None,
    output_timeout: float | None = None,
) -> Task:
    """Build a task from an async function that takes the input and output channels."""
    return Task(
        fn, name=name, input_timeout=input_timeout, output_timeout=output_timeout
    )


async def emit(out: Channel, el: Any) -> None:
    """Send ``el`` to ``out``; if the running task is cancelled, nothing is sent."""
    await out.send(el)


async def _cancel_all(tasks: Iterable[asyncio.Future]) -> None:
    tasks = list(tasks)
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


def _error_of(task: asyncio.Future) -> BaseException | None:
    if task.cancelled():
        return asyncio.CancelledError()
    return task.exception()


@dataclass
class _Connection:
    src: Task
    dest: Task
    channel: Channel

    async def run(self, inp: Channel, out: Channel) -> None:
        src_task = asyncio.create_task(self.src.run(inp, self.channel))
        dest_task = asyncio.create_task(self.dest.run(self.channel, out))
        tasks = (src_task, dest_task)
        downstream_finished = False
        pending = set(tasks)
        try:
            while pending:
                done, pending = await asyncio.wait(
                    pending, return_when=asyncio.FIRST_COMPLETED
                )
                for finished in (t for t in tasks if t in done):
                    if finished is src_task and downstream_finished and finished.cancelled():
                        continue
                    error = _error_of(finished)
                    if error is not None:
                        await _cancel_all(pending)
                        raise error
                if dest_task in done and src_task in pending:
                    # The downstream has stopped reading; stop the upstream quietly.
                    downstream_finished = True
                    src_task.cancel()
        except asyncio.CancelledError:
            await _cancel_all(tasks)
            raise


def connect(src: Task, dest: Task, buffer: int = 0, **kwargs: Any) -> Task:
    """Chain ``src`` into ``dest`` through a channel of the given buffer size.

    If ``dest`` finishes before ``src``, ``src`` is cancelled without error.
    Keyword arguments are passed to :func:`from_fn`.
    """
    link = _Connection(src, dest, Channel(buffer))
    return from_fn(link.run, **kwargs)