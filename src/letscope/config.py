"""
Runner configuration and its file formats (YAML/JSON/TOML).
"""

from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, fields
from enum import Enum, auto
from pathlib import Path
from typing import Any, Mapping

import yaml


class ExampleOrder(Enum):
    DEFINED = auto()
    """
    Examples run depth-first in the order they are declared.
    """

    RANDOM = auto()
    """
    Examples run in a shuffled order, reproducible through ``RunnerConfig.seed``.
    """


@dataclass(kw_only=True, frozen=True, slots=True, weakref_slot=True)
class RunnerConfig:
    order: ExampleOrder = ExampleOrder.DEFINED

    seed: int | None = None
    """
    Seed for ``ExampleOrder.RANDOM``. ``None`` picks a fresh seed per run.
    """

    fail_fast: bool = False
    """
    Whether to stop after the first failed example.
    """

    pattern: str | None = None
    """
    Only run examples whose full description contains this substring.
    """


def config_from_mapping(data: Mapping[str, Any]) -> RunnerConfig:
    """
    Build a :class:`RunnerConfig` from parsed configuration data.

    :raises ValueError: On unknown keys or values of the wrong type.
    """
    known = {config_field.name for config_field in fields(RunnerConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")

    options: dict[str, Any] = {}
    if "order" in data:
        order = data["order"]
        if not isinstance(order, str) or order.upper() not in ExampleOrder.__members__:
            raise ValueError(
                f"order must be one of {', '.join(m.lower() for m in ExampleOrder.__members__)}, got {order!r}"
            )
        options["order"] = ExampleOrder[order.upper()]
    if "seed" in data:
        seed = data["seed"]
        if seed is not None and (isinstance(seed, bool) or not isinstance(seed, int)):
            raise ValueError(f"seed must be an integer, got {type(seed).__name__}")
        options["seed"] = seed
    if "fail_fast" in data:
        if not isinstance(data["fail_fast"], bool):
            raise ValueError(
                f"fail_fast must be a boolean, got {type(data['fail_fast']).__name__}"
            )
        options["fail_fast"] = data["fail_fast"]
    if "pattern" in data:
        pattern = data["pattern"]
        if pattern is not None and not isinstance(pattern, str):
            raise ValueError(f"pattern must be a string, got {type(pattern).__name__}")
        options["pattern"] = pattern
    return RunnerConfig(**options)


def load_config(file_path: Path) -> RunnerConfig:
    """
    Load a runner configuration file.

    ``pyproject.toml`` is read from its ``[tool.letscope]`` table; other files
    must hold the options at top level.

    :raises ValueError: If the file format is not recognized or the content is invalid.
    """
    content = file_path.read_text(encoding="utf-8")

    name = file_path.name.lower()
    if name.endswith(".yaml") or name.endswith(".yml"):
        data = yaml.safe_load(content)
    elif name.endswith(".json"):
        data = json.loads(content)
    elif name.endswith(".toml"):
        data = tomllib.loads(content)
        if name == "pyproject.toml":
            data = data.get("tool", {}).get("letscope", {})
    else:
        raise ValueError(
            f"Unrecognized configuration file format: {file_path.name}. "
            f"Expected .yaml, .yml, .json, or .toml"
        )

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(
            f"Configuration must contain a mapping at top level, got {type(data).__name__}"
        )
    return config_from_mapping(data)
