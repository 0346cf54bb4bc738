"""Common CLI argument registration utilities."""
from __future__ import annotations

import argparse

from serversetup.core.config.properties import (
    SystemProperties,
    load_system_properties,
    parse_property_assignments,
)
from serversetup.core.instance.state import DEFAULT_INSTANCE_NAME


def add_json_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )


def add_verbose_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log at DEBUG level (includes every failed readiness probe)",
    )


def add_property_args(parser: argparse.ArgumentParser) -> None:
    """Add ``-D KEY=VALUE`` and ``--properties-file`` arguments."""
    parser.add_argument(
        "-D",
        dest="properties",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Set a property (repeatable), e.g. -D test.server.url=http://localhost:8080",
    )
    parser.add_argument(
        "--properties-file",
        dest="properties_files",
        action="append",
        default=[],
        metavar="FILE",
        help="YAML properties file (repeatable; later files win)",
    )


def add_instance_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--instance",
        default=DEFAULT_INSTANCE_NAME,
        help=f"Server instance name (default: {DEFAULT_INSTANCE_NAME})",
    )


def properties_from_args(args: argparse.Namespace) -> SystemProperties:
    """Build layered properties from files, the environment and ``-D`` overrides."""
    overrides = parse_property_assignments(getattr(args, "properties", None) or [])
    return load_system_properties(
        getattr(args, "properties_files", None) or [],
        overrides=overrides,
    )


__all__ = [
    "add_instance_arg",
    "add_json_flag",
    "add_property_args",
    "add_verbose_flag",
    "properties_from_args",
]
