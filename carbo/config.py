"""Reading YAML files into configuration objects."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

import yaml


def _as_mapping(data: Any) -> dict:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise TypeError(
            f"expected a mapping in the configuration file, got {type(data).__name__}"
        )
    return data


def parse(path: str | os.PathLike, into: Any = dict) -> Any:
    """Read the YAML file at ``path`` into ``into`` and return the result.

    ``into`` may be a dataclass type (built from the matching keys; unknown
    keys are ignored), a dataclass instance or a dict (updated in place), or
    any other type, which is called with the parsed document.
    """
    with open(path, encoding="utf-8") as handle:
        data = yaml.safe_load(handle)

    if isinstance(into, type):
        if dataclasses.is_dataclass(into):
            mapping = _as_mapping(data)
            names = {field.name for field in dataclasses.fields(into) if field.init}
            return into(**{k: v for k, v in mapping.items() if k in names})
        if issubclass(into, dict):
            return into(_as_mapping(data))
        return into(data)

    if dataclasses.is_dataclass(into):
        mapping = _as_mapping(data)
        for field in dataclasses.fields(into):
            if field.name in mapping:
                setattr(into, field.name, mapping[field.name])
        return into

    if isinstance(into, dict):
        into.update(_as_mapping(data))
        return into

    raise TypeError(f"cannot parse configuration into {type(into).__name__}")