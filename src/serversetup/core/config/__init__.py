"""Configuration for server setup: properties, timeouts and per-instance settings."""
from __future__ import annotations

from .instance import InstanceConfig
from .properties import (
    PROPERTIES_FILE_ENV,
    SystemProperties,
    load_properties_file,
    load_system_properties,
    parse_property_assignments,
)
from .timeouts import TIMEOUT_MULTIPLIER_PROP, TimeoutsProvider

__all__ = [
    "InstanceConfig",
    "PROPERTIES_FILE_ENV",
    "SystemProperties",
    "TIMEOUT_MULTIPLIER_PROP",
    "TimeoutsProvider",
    "load_properties_file",
    "load_system_properties",
    "parse_property_assignments",
]
