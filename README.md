# carbo

Building blocks for composing data processing pipelines that run concurrently
on asyncio.

A pipeline is made of tasks. Every task reads elements from an input channel
and writes elements to an output channel. Three kinds of task cover most needs:

- a **source** starts a pipeline and produces elements (for example from a list);
  its input is closed as soon as the pipeline starts;
- a **pipe** turns input elements into output elements (map, select, batch,
  take, ...); its output is closed automatically when it finishes;
- a **sink** ends a pipeline and consumes elements (for example into a list);
  it sends nothing to its output.

A typical pipeline looks like `source -> pipe -> ... -> pipe -> sink`. Tasks are
joined with `carbo.task.connect`, which itself returns a task, and the whole
chain is wrapped in a `Flow` and run.

## Installation

```
pip install carbo
```

## A first pipeline

```python
import asyncio

from carbo.flow import from_task
from carbo.mapping import map_elements
from carbo.sink import element_wise
from carbo.source import from_slice
from carbo.task import connect


async def double(s):
    return s + s


async def show(s):
    print(s)


doubled = connect(from_slice(["a", "b", "c"]).as_task(), map_elements(double).as_task(), 1)
pipeline = connect(doubled, element_wise(show).as_task(), 1)

asyncio.run(from_task(pipeline).run())
# aa
# bb
# cc
```

## Modules

- `carbo.task` – the `Task` class, `from_fn`, `connect`, `emit` and `get_name`.
  A task is built from an async function `fn(inp, out)` that must close `out`
  when it finishes. `from_fn` accepts a `name` (returned by `get_name()` while
  the task runs) and `input_timeout` / `output_timeout` in seconds, which bound
  each receive from the input and each send to the output and raise
  `TimeoutError` when exceeded. `Task.defer(fn)` registers a function to call
  just before `Task.run` returns. `connect(src, dest, buffer)` links two tasks
  through a channel of the given buffer size; when `dest` finishes before
  `src`, `src` is cancelled without an error.
- `carbo.channel` – `Channel`, a closable FIFO channel with a fixed buffer
  (`send`, `receive`, `close`, `async for`), and `ChannelClosed`, raised on
  receiving from a drained closed channel or sending to or closing a closed
  one. Also `run_group`, which runs awaitables together and cancels the rest on
  the first failure, `duplicate_out_chan` and `read_items`.
- `carbo.source` – `from_slice`, `from_chan`, `from_fn` and `concurrent`
  (several sources merged, in no fixed order). `from_slice` and `from_chan`
  return a `SourceOp` with `as_source()` / `as_task()`.
- `carbo.pipe` – `batch`, `select`, `flatten`, `take`, `from_fn`, `concurrent`,
  `concurrent_from_fn` and `concurrency_index`. Operators are `PipeOp` objects
  with `as_pipe()`, `as_task()` and `concurrent(n)`. Concurrent pipes share one
  input and do not keep the order of elements; inside them
  `concurrency_index()` tells which copy is running (`-1` elsewhere).
  `concurrent` with no pipes raises `ValueError`.
- `carbo.mapping` – `map_elements`, `map_with_cache` and `tap`. A `MapOp` also
  offers `concurrent_preserving_order(n)`, which runs `n` copies and emits
  results in input order, and `sticky_concurrent_preserving_order(bucket, n)`,
  where `bucket(el)` picks the copy for each element (an out-of-range bucket
  raises `IndexError`). A concurrency below 1 raises `ValueError`.
- `carbo.fanout` – `fanout(aggregate)` and `fanout_with_map(map_fn)` build a
  `FanoutOp`; `add(task, in_buffer, out_buffer)` registers downstream tasks.
  Every input is sent to all of them, and their results for that input are
  passed, in the order the tasks were added, to the aggregate function.
- `carbo.sink` – `element_wise`, `to_slice`, `to_chan`, `from_fn`, `concurrent`
  and `concurrent_from_fn`. `to_chan` closes its channel once the sink has run.
  `ElementWiseOp.concurrent(n)` runs `n` copies on a shared input;
  `concurrent` with no sinks raises `ValueError`.
- `carbo.flow` – `Flow`, `from_task`, `Factory`, `new_factory`,
  `new_factory_with_config` and the `run` / `run_with_config` coroutines.
- `carbo.config` – `parse(path, into)` reads a YAML file into a dataclass type
  (unknown keys are ignored), a dataclass instance or dict (updated in place),
  or any other type called with the parsed document.
- `carbo.registry` – a `Registry` of named flow factories, so one program can
  offer several flows and run the one chosen by name; an unknown name raises
  `NoMatchingFlowError`.
- `carbo.taskfn` – `slice_to_slice`, `source_to_slice` and `slice_to_sink` turn
  a task into an async function over a short list; handy in tests.
- `carbo.cache`, `carbo.store`, `carbo.marshal` – caching of function results.
  A `RawSpec` keeps results as they are; a `MarshalSpec` stores them as bytes
  through a marshaling spec (`bytes_spec()` for text or bytes, `pickle_spec()`
  for any picklable value). Key functions return a `StoreKey` made with `key`
  (normal caching), `write_only_key` (always compute and store) or `bypass()`
  (never touch the store). `MemoryStore` keeps values in memory;
  `cache.run(spec, arg, fn)` calls an async function through a spec.

## Flows from configuration

```python
import asyncio
from dataclasses import dataclass

from carbo.flow import from_task, run_with_config
from carbo.sink import element_wise
from carbo.source import from_slice
from carbo.task import connect


@dataclass
class MyConfig:
    string_field: str = ""
    int_field: int = 0


async def show(value):
    print(value)


def build(cfg):
    task = connect(from_slice([cfg.string_field]).as_task(), element_wise(show).as_task(), 1)
    return from_task(task)


asyncio.run(run_with_config(build, "config.yaml", MyConfig))
```

`run_with_config` reads the YAML file, builds the configuration object, passes
it to `build` and runs the resulting flow. Without a configuration type the
parsed document is passed as a `dict`.

## What it does not do

Pipelines run inside a single process. There is no way to expose a
pipeline's output to another process, or to pull elements from one, over a
network. There is no command-line program either: flows are built and run
from Python code.

## Running the tests

```
pip install "carbo[test]"
pytest
```