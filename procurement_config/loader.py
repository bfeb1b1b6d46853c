"""
Settings loader (``procurement_config.loader``).

Responsibility
--------------
Reads a YAML settings file and parses it into ``EngineSettings``.  Callers
go through ``procurement_config.get_settings()``; this module is the
parsing half only.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or invalid values  -> ``ValueError``.
"""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from procurement_config.schema import EngineSettings


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a mapping, got {type(data).__name__}")
    return data


def parse_settings(data: dict[str, Any]) -> EngineSettings:
    """Build ``EngineSettings`` from a parsed mapping.

    A top-level ``engine:`` section is accepted as well as a flat mapping.
    """
    section = data.get("engine", data)
    if not isinstance(section, dict):
        raise ValueError("'engine' section must be a mapping")

    known = {f.name for f in fields(EngineSettings)}
    unknown = sorted(set(section) - known)
    if unknown:
        raise ValueError(f"Unknown settings keys: {', '.join(unknown)}")
    return EngineSettings(**section)


def load_settings(path: Path) -> EngineSettings:
    return parse_settings(load_yaml_file(path))
