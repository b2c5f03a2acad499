import pytest

from carbo import pipe
from carbo.channel import Channel, read_items
from carbo.task import emit
from carbo.taskfn import slice_to_slice


async def double(s):
    return s + s


def create_pipe_fn(fn):
    calls = []

    async def pipe_fn(inp, out):
        calls.append(pipe.concurrency_index())
        async for item in inp:
            await emit(out, await fn(item))

    return pipe_fn, calls


@pytest.mark.asyncio
async def test_pipe_run():
    pipe_fn, calls = create_pipe_fn(double)
    p = pipe.from_fn(pipe_fn)

    deferred = []
    p.defer(lambda: deferred.append(True))

    inp = Channel(2)
    out = Channel(2)
    await inp.send("item1")
    await inp.send("item2")
    inp.close()

    await p.run(inp, out)

    assert await read_items(out) == ["item1item1", "item2item2"]
    assert len(calls) == 1
    assert deferred == [True]


@pytest.mark.asyncio
async def test_batch_exact():
    fn = slice_to_slice(pipe.batch(2).as_task())
    assert await fn(["a", "b", "c", "d"]) == [["a", "b"], ["c", "d"]]


@pytest.mark.asyncio
async def test_batch_remainder():
    fn = slice_to_slice(pipe.batch(2).as_task())
    assert await fn(["a", "b", "c", "d", "e"]) == [["a", "b"], ["c", "d"], ["e"]]


@pytest.mark.asyncio
async def test_select():
    fn = slice_to_slice(pipe.select(lambda n: n % 2 == 0).as_task())
    assert await fn([1, 2, 3, 4, 5]) == [2, 4]


@pytest.mark.asyncio
async def test_flatten():
    fn = slice_to_slice(pipe.flatten().as_task())
    assert await fn([["item1", "item2"], ["item3"]]) == ["item1", "item2", "item3"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "inputs, expected",
    [
        (["item1", "item2", "item3", "item4", "item5"], ["item1", "item2"]),
        (["item1", "item2"], ["item1", "item2"]),
        (["item1"], ["item1"]),
    ],
)
async def test_take(inputs, expected):
    fn = slice_to_slice(pipe.take(2).as_task())
    assert await fn(inputs) == expected


@pytest.mark.asyncio
async def test_concurrent():
    fn1, calls1 = create_pipe_fn(double)
    fn2, calls2 = create_pipe_fn(double)
    p = pipe.concurrent([pipe.from_fn(fn1), pipe.from_fn(fn2)])

    out = await slice_to_slice(p.as_task())(["item1", "item2"])

    assert sorted(out) == ["item1item1", "item2item2"]
    assert len(calls1) == 1
    assert len(calls2) == 1


@pytest.mark.asyncio
async def test_concurrent_sets_index():
    fn1, calls1 = create_pipe_fn(double)
    fn2, calls2 = create_pipe_fn(double)
    p = pipe.concurrent([pipe.from_fn(fn1), pipe.from_fn(fn2)])

    await slice_to_slice(p.as_task())(["item1", "item2"])

    assert calls1 == [0]
    assert calls2 == [1]
    assert pipe.concurrency_index() == -1


@pytest.mark.asyncio
async def test_concurrent_error():
    class TaskError(Exception):
        pass

    async def failing(s):
        raise TaskError("test error")

    fn1, _ = create_pipe_fn(failing)
    fn2, _ = create_pipe_fn(failing)
    p = pipe.concurrent(
        [pipe.from_fn(fn1, name="pipeFn1"), pipe.from_fn(fn2, name="pipeFn2")]
    )

    with pytest.raises(TaskError):
        await slice_to_slice(p.as_task())(["item1", "item2"])


def test_concurrent_without_pipes():
    with pytest.raises(ValueError, match="at least 1 concurrent pipe is required"):
        pipe.concurrent([])


@pytest.mark.asyncio
async def test_concurrent_from_fn():
    fn, calls = create_pipe_fn(double)
    p = pipe.concurrent_from_fn(fn, 2)

    out = await slice_to_slice(p.as_task())(["item1", "item2"])

    assert sorted(out) == ["item1item1", "item2item2"]
    assert len(calls) == 2
    assert sorted(calls) == [0, 1]


@pytest.mark.parametrize("concurrency", [0, -1])
def test_concurrent_from_fn_without_pipes(concurrency):
    fn, _ = create_pipe_fn(double)
    with pytest.raises(ValueError, match="at least 1 concurrent pipe is required"):
        pipe.concurrent_from_fn(fn, concurrency)


@pytest.mark.asyncio
async def test_pipe_op_concurrent():
    op = pipe.select(lambda n: n > 2)
    out = await slice_to_slice(op.concurrent(3).as_task())([1, 2, 3, 4, 5])
    assert sorted(out) == [3, 4, 5]


@pytest.mark.asyncio
async def test_as_pipe_passes_name():
    names = []

    async def record(inp, out):
        from carbo.task import get_name

        names.append(get_name())
        async for el in inp:
            await emit(out, el)

    op = pipe.PipeOp(record)
    out = await slice_to_slice(op.as_pipe(name="recorder"))(["x"])
    assert out == ["x"]
    assert names == ["recorder"]


def test_concurrency_index_outside_pipe():
    assert pipe.concurrency_index() == -1