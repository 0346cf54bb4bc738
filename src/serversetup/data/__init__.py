"""
Bundled defaults and schemas.

``config/defaults.yaml`` holds the fallback value of every property;
``schemas/properties.schema.json`` describes a properties file. Both are read
through importlib.resources so they work from an installed wheel.
"""

from __future__ import annotations

import json
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml

DEFAULTS_FILE = "defaults.yaml"


def get_data_path(subpackage: str, filename: str = "") -> Path:
    """Return the path of a bundled data file, or of its directory.

    Example:
        >>> get_data_path("config", "defaults.yaml")
        PosixPath('/path/to/serversetup/data/config/defaults.yaml')
    """
    base = Path(str(resources.files("serversetup.data") / subpackage))
    return base / filename if filename else base


@lru_cache(maxsize=16)
def read_yaml(subpackage: str, filename: str) -> dict[str, Any]:
    """Read a bundled YAML mapping (cached); anything else reads as empty."""
    data = yaml.safe_load(get_data_path(subpackage, filename).read_text(encoding="utf-8"))
    return data if isinstance(data, dict) else {}


@lru_cache(maxsize=16)
def read_json(subpackage: str, filename: str) -> dict[str, Any]:
    """Read a bundled JSON document (cached)."""
    return json.loads(get_data_path(subpackage, filename).read_text(encoding="utf-8"))


def defaults_section(name: str) -> dict[str, Any]:
    """Return one top-level section of ``config/defaults.yaml``."""
    section = read_yaml("config", DEFAULTS_FILE).get(name)
    return section if isinstance(section, dict) else {}


def clear_caches() -> None:
    """Clear all read caches (tests)."""
    read_yaml.cache_clear()
    read_json.cache_clear()


__all__ = [
    "DEFAULTS_FILE",
    "clear_caches",
    "defaults_section",
    "get_data_path",
    "read_json",
    "read_yaml",
]
