"""Building blocks for composing concurrent data processing pipelines on asyncio."""

__version__ = "0.1.0"

__all__ = [
    "cache",
    "channel",
    "config",
    "deferrer",
    "fanout",
    "flow",
    "mapping",
    "marshal",
    "pipe",
    "registry",
    "sink",
    "source",
    "store",
    "task",
    "taskfn",
]