"""Flat string properties driving server setup.

Properties are the single configuration source of an orchestrator: a
string-to-string mapping keyed by dotted names such as ``test.server.url``.
They are layered from (lowest to highest priority):

1. YAML properties files (``$SERVERSETUP_PROPERTIES_FILE`` first, then any
   explicitly passed files). Nested mappings are flattened with dots, so
   ``{"server": {"ready": {"path": {"1": "/"}}}}`` yields ``server.ready.path.1``.
2. Environment variables whose name contains a dot, or that match a known
   dot-less property name (``keepJarRunning``).
3. Explicit overrides (``-D key=value`` on the command line, ``--server-property``
   in pytest).
"""
from __future__ import annotations

import os
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from typing import Any, Dict, List, Optional

import jsonschema
import yaml

from serversetup.core.exceptions import ConfigurationError
from serversetup.data import read_json

PROPERTIES_FILE_ENV = "SERVERSETUP_PROPERTIES_FILE"

# Property names without a dot that are still picked up from the environment.
PLAIN_ENV_PROPERTY_NAMES = frozenset({"keepJarRunning"})

_TRUE_VALUES = {"1", "true", "yes", "on"}


class SystemProperties(Mapping[str, str]):
    """Immutable mapping of property names to string values."""

    def __init__(self, values: Optional[Mapping[Any, Any]] = None) -> None:
        self._values: Dict[str, str] = {}
        for key, value in (values or {}).items():
            if value is None:
                continue
            self._values[str(key)] = _as_property_value(value)

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"SystemProperties({self._values!r})"

    def get_nonblank(self, key: str) -> Optional[str]:
        """Return the stripped value of ``key``, or None when unset or blank."""
        value = self._values.get(key)
        if value is None or not value.strip():
            return None
        return value.strip()

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get_nonblank(key)
        if value is None:
            return default
        return value.lower() in _TRUE_VALUES

    def get_float(self, key: str, default: float) -> float:
        value = self.get_nonblank(key)
        if value is None:
            return float(default)
        try:
            return float(value)
        except ValueError as exc:
            raise ConfigurationError(
                f"Property {key} must be a number, got {value!r}",
                context={"property": key, "value": value},
            ) from exc

    def get_int(self, key: str, default: int) -> int:
        value = self.get_nonblank(key)
        if value is None:
            return int(default)
        try:
            return int(value)
        except ValueError as exc:
            raise ConfigurationError(
                f"Property {key} must be an integer, got {value!r}",
                context={"property": key, "value": value},
            ) from exc

    def prefixed_items(self, prefix: str) -> List[tuple[str, str]]:
        """Return ``(key, value)`` pairs whose key starts with ``prefix``, sorted by key."""
        return sorted((k, v) for k, v in self._values.items() if k.startswith(prefix))

    def prefixed_values(self, prefix: str) -> List[str]:
        """Return the values of keys starting with ``prefix``, in ascending key order."""
        return [v for _, v in self.prefixed_items(prefix)]

    def with_overrides(self, overrides: Optional[Mapping[str, Any]]) -> "SystemProperties":
        merged: Dict[str, Any] = dict(self._values)
        merged.update(overrides or {})
        return SystemProperties(merged)

    def as_dict(self) -> Dict[str, str]:
        return dict(self._values)


def _as_property_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def flatten_properties(raw: Mapping[Any, Any], prefix: str = "") -> Dict[str, Any]:
    """Flatten nested mappings into dotted keys."""
    flat: Dict[str, Any] = {}
    for key, value in raw.items():
        name = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            flat.update(flatten_properties(value, name))
        elif value is not None:
            flat[name] = value
    return flat


def load_properties_file(path: Path | str) -> Dict[str, Any]:
    """Read, validate and flatten a YAML properties file."""
    p = Path(path).expanduser()
    if not p.is_file():
        raise ConfigurationError(f"Properties file not found: {p}", context={"path": str(p)})

    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in properties file {p}: {exc}", context={"path": str(p)}) from exc
    if data is None:
        return {}

    schema = read_json("schemas", "properties.schema.json")
    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as exc:
        raise ConfigurationError(
            f"Properties file {p} is not a mapping of scalar values: {exc.message}",
            context={"path": str(p)},
        ) from exc

    return flatten_properties(data)


def environment_properties(environ: Mapping[str, str]) -> Dict[str, str]:
    return {
        k: v
        for k, v in environ.items()
        if "." in k or k in PLAIN_ENV_PROPERTY_NAMES
    }


def parse_property_assignments(items: Iterable[str]) -> Dict[str, str]:
    """Parse ``key=value`` strings (as given to ``-D``) into a dict."""
    parsed: Dict[str, str] = {}
    for item in items:
        key, sep, value = str(item).partition("=")
        key = key.strip()
        if not sep or not key:
            raise ConfigurationError(
                f"Expected KEY=VALUE, got {item!r}",
                context={"assignment": item},
            )
        parsed[key] = value
    return parsed


def load_system_properties(
    files: Iterable[Path | str] = (),
    *,
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> SystemProperties:
    """Build the layered properties mapping described in the module docstring."""
    env = os.environ if environ is None else environ

    layered: Dict[str, Any] = {}
    sources: List[Path | str] = []
    env_file = (env.get(PROPERTIES_FILE_ENV) or "").strip()
    if env_file:
        sources.append(env_file)
    sources.extend(files)
    for source in sources:
        layered.update(load_properties_file(source))

    layered.update(environment_properties(env))
    layered.update(overrides or {})
    return SystemProperties(layered)


__all__ = [
    "PROPERTIES_FILE_ENV",
    "SystemProperties",
    "environment_properties",
    "flatten_properties",
    "load_properties_file",
    "load_system_properties",
    "parse_property_assignments",
]
