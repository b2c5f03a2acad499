"""Closable asynchronous channels and helpers to run coroutines as a group."""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from dataclasses import dataclass
from itertools import islice
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ChannelClosed(Exception):
    """Raised on receiving from a drained closed channel, or sending to or closing a closed one."""


@dataclass(eq=False)
class _Pending:
    item: Any
    released: asyncio.Future


class Channel(Generic[T]):
    """A FIFO channel with a fixed buffer, closable by the producer.

    With a capacity of zero a send completes only once a receiver has taken
    the item; otherwise a send completes as soon as the item fits in the buffer.
    """

    def __init__(self, capacity: int = 0) -> None:
        self.capacity = max(capacity, 0)
        self._items: deque[_Pending] = deque()
        self._receivers: list[asyncio.Future] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return sum(
            1
            for pending in self._items
            if pending.released.done() and not pending.released.cancelled()
        )

    async def send(self, item: T) -> None:
        """Put ``item`` into the channel, waiting while the buffer is full."""
        if self._closed:
            raise ChannelClosed("send on closed channel")
        pending = _Pending(item, asyncio.get_running_loop().create_future())
        self._items.append(pending)
        self._release_buffered()
        self._wake_receivers()
        try:
            await pending.released
        except asyncio.CancelledError:
            if pending.released.cancelled():
                self._discard(pending)
            raise

    async def receive(self) -> T:
        """Take the next item, waiting for one; raise ChannelClosed once drained and closed."""
        while True:
            while self._items and self._items[0].released.cancelled():
                self._items.popleft()
            if self._items:
                break
            if self._closed:
                raise ChannelClosed("receive from closed channel")
            waiter = asyncio.get_running_loop().create_future()
            self._receivers.append(waiter)
            try:
                await waiter
            finally:
                if waiter in self._receivers:
                    self._receivers.remove(waiter)
        pending = self._items.popleft()
        if not pending.released.done():
            pending.released.set_result(None)
        self._release_buffered()
        return pending.item

    def close(self) -> None:
        """Close the channel; buffered items stay receivable, waiting senders fail."""
        if self._closed:
            raise ChannelClosed("close of closed channel")
        self._closed = True
        kept: deque[_Pending] = deque()
        for pending in self._items:
            if pending.released.cancelled():
                continue
            if pending.released.done():
                kept.append(pending)
            else:
                pending.released.set_exception(ChannelClosed("send on closed channel"))
        self._items = kept
        self._wake_receivers()

    async def __aiter__(self) -> AsyncIterator[T]:
        while True:
            try:
                item = await self.receive()
            except ChannelClosed:
                return
            yield item

    def _release_buffered(self) -> None:
        for pending in islice(self._items, self.capacity):
            if not pending.released.done():
                pending.released.set_result(None)

    def _discard(self, pending: _Pending) -> None:
        try:
            self._items.remove(pending)
        except ValueError:
            pass

    def _wake_receivers(self) -> None:
        for waiter in self._receivers:
            if not waiter.done():
                waiter.set_result(None)
        self._receivers.clear()


async def _cancel_all(tasks: Iterable[asyncio.Future]) -> None:
    tasks = list(tasks)
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


def _error_of(task: asyncio.Future) -> BaseException | None:
    if task.cancelled():
        return asyncio.CancelledError()
    return task.exception()


async def run_group(*aws: Awaitable[Any]) -> list[Any]:
    """Run awaitables concurrently and return their results in order.

    The first failure cancels the others, and is raised once they have stopped.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    if not tasks:
        return []
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    except asyncio.CancelledError:
        await _cancel_all(tasks)
        raise
    if pending:
        await _cancel_all(pending)
    errors = [_error_of(task) for task in tasks if task in done]
    first = next((error for error in errors if error is not None), None)
    if first is not None:
        raise first
    return [task.result() for task in tasks]


def duplicate_out_chan(
    out: Channel[T], n: int
) -> tuple[list[Channel[T]], Callable[[], Awaitable[None]]]:
    """Create ``n`` channels and a coroutine function that merges them into ``out``.

    The merging coroutine finishes once every created channel is closed; it
    does not close ``out``.
    """
    if n <= 0:
        raise ValueError(f"argument n must be a positive value but received {n}")

    outs: list[Channel[T]] = [Channel() for _ in range(n)]

    async def forward(channel: Channel[T]) -> None:
        while True:
            try:
                item = await channel.receive()
            except ChannelClosed:
                return
            await out.send(item)

    async def aggregate() -> None:
        await run_group(*(forward(channel) for channel in outs))

    return outs, aggregate


async def read_items(channel: Channel[T]) -> list[T]:
    """Receive every item until the channel is closed."""
    return [item async for item in channel]