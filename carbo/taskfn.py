"""Helpers that run a task on a list of inputs and collect its outputs."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from carbo.flow import from_task
from carbo.sink import to_slice
from carbo.source import from_slice
from carbo.task import Task, connect


def slice_to_slice(task: Task) -> Callable[[list], Awaitable[list]]:
    """Turn a task into an async function from a list of inputs to a list of outputs."""

    async def run(inputs: list) -> list:
        head = connect(from_slice(inputs).as_task(), task, 0)
        outputs: list[Any] = []
        whole = connect(head, to_slice(outputs).as_task(), 0)
        await from_task(whole).run()
        return outputs

    return run


def source_to_slice(src: Task) -> Callable[[], Awaitable[list]]:
    """Turn a source into an async function that returns everything it emits."""

    async def run() -> list:
        outputs: list[Any] = []
        whole = connect(src.as_task(), to_slice(outputs).as_task(), 0)
        await from_task(whole).run()
        return outputs

    return run


def slice_to_sink(sink: Task) -> Callable[[list], Awaitable[None]]:
    """Turn a sink into an async function that feeds it a list of inputs."""

    async def run(inputs: list) -> None:
        whole = connect(from_slice(inputs).as_task(), sink.as_task(), 0)
        await from_task(whole).run()

    return run