"""Flows: whole data pipelines, and factories that build them."""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from carbo.channel import Channel
from carbo.config import parse
from carbo.task import Task


@dataclass
class Flow:
    """A pipeline defined by a task with neither input nor output.

    Such a task is usually a chain that starts with a source and ends with a sink.
    """

    task: Task

    async def run(self) -> None:
        """Run the pipeline to completion."""
        inp: Channel = Channel()
        out: Channel = Channel()
        inp.close()  # kicks the sources
        await self.task.run(inp, out)


def from_task(task: Task) -> Flow:
    """Create a flow from a task that has neither input nor output."""
    return Flow(task)


class Factory:
    """Builds a flow on demand."""

    def __init__(self, builder: Callable[[], Flow]) -> None:
        self._builder = builder

    def build(self) -> Flow:
        """Build a new flow."""
        return self._builder()


def new_factory(fn: Callable[[], Flow]) -> Factory:
    """Create a factory from a function that builds a flow."""
    return Factory(fn)


def new_factory_with_config(
    fn: Callable[[Any], Flow],
    cfg_path: str | os.PathLike,
    config_type: Any = dict,
) -> Factory:
    """Create a factory whose function receives the configuration read from ``cfg_path``.

    The file is read each time a flow is built.
    """

    def build() -> Flow:
        return fn(parse(cfg_path, config_type))

    return Factory(build)


async def run(fn: Callable[[], Flow]) -> None:
    """Build a flow with ``fn`` and run it."""
    await new_factory(fn).build().run()


async def run_with_config(
    fn: Callable[[Any], Flow],
    cfg_path: str | os.PathLike,
    config_type: Any = dict,
) -> None:
    """Build a flow with ``fn`` and the configuration at ``cfg_path``, and run it."""
    await new_factory_with_config(fn, cfg_path, config_type).build().run()