"""Marshaling specs: how values are turned into bytes and back."""

from __future__ import annotations

import pickle
from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

T = TypeVar("T")

_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


class Spec(ABC, Generic[T]):
    """Turns values into bytes and back; ``unmarshal`` inverts ``marshal``."""

    @abstractmethod
    def marshal(self, value: T) -> bytes:
        """Convert a value into bytes."""

    @abstractmethod
    def unmarshal(self, data: bytes) -> T:
        """Convert bytes produced by :meth:`marshal` back into a value."""


class BytesSpec(Spec[Any]):
    """Stores text or byte strings as their raw bytes.

    Text is encoded as UTF-8; bytes that are not valid UTF-8 still survive a
    round trip.
    """

    def __init__(self, kind: type = str) -> None:
        if not (isinstance(kind, type) and issubclass(kind, (str, bytes, bytearray))):
            raise TypeError(f"kind must be str, bytes or bytearray, not {kind!r}")
        self.kind = kind

    def marshal(self, value: Any) -> bytes:
        if isinstance(value, str):
            return value.encode(_ENCODING, _ERRORS)
        return bytes(value)

    def unmarshal(self, data: bytes) -> Any:
        if issubclass(self.kind, str):
            return self.kind(bytes(data).decode(_ENCODING, _ERRORS))
        return self.kind(data)


class PickleSpec(Spec[Any]):
    """Serializes arbitrary Python values with :mod:`pickle`."""

    def marshal(self, value: Any) -> bytes:
        return pickle.dumps(value)

    def unmarshal(self, data: bytes) -> Any:
        try:
            return pickle.loads(data)
        except (
            pickle.UnpicklingError,
            EOFError,
            AttributeError,
            ImportError,
            IndexError,
            TypeError,
            ValueError,
        ) as exc:
            raise ValueError(f"cannot unmarshal data: {exc}") from exc


def bytes_spec(kind: type = str) -> BytesSpec:
    """A spec that stores ``kind`` values (text or bytes) as raw bytes."""
    return BytesSpec(kind)


def pickle_spec() -> PickleSpec:
    """A spec that stores any picklable value."""
    return PickleSpec()