from dataclasses import dataclass

import pytest

from carbo.marshal import BytesSpec, PickleSpec, bytes_spec, pickle_spec


@dataclass
class DummyStruct:
    value: str


def test_bytes_round_trip():
    data = "dummy data"
    spec = bytes_spec(str)
    bs = spec.marshal(data)
    assert bs == b"dummy data"
    assert spec.unmarshal(bs) == data


def test_bytes_default_kind_is_text():
    spec = BytesSpec()
    assert spec.unmarshal(b"abc") == "abc"


def test_bytes_kind_bytes():
    spec = bytes_spec(bytes)
    assert spec.marshal(b"raw") == b"raw"
    assert spec.unmarshal(b"raw") == b"raw"


def test_bytes_invalid_utf8_survives_round_trip():
    spec = bytes_spec(str)
    assert spec.marshal(spec.unmarshal(b"\xff\xfe")) == b"\xff\xfe"


def test_bytes_rejects_other_kinds():
    with pytest.raises(TypeError):
        bytes_spec(int)


def test_pickle_round_trip():
    data = DummyStruct("dummy data")
    spec = pickle_spec()
    bs = spec.marshal(data)
    assert len(bs) > 0
    assert spec.unmarshal(bs) == data


def test_pickle_rejects_garbage():
    with pytest.raises(ValueError):
        PickleSpec().unmarshal(b"")