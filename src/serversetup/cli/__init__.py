"""
serversetup CLI package.

Commands are discovered from ``cli/commands``; each module exposes
``SUMMARY``, ``register_args(parser)`` and ``main(args) -> int``.

- _output: Output formatting (JSON/text modes)
- _args: Common argument registration and property loading helpers
"""
from ._args import (
    add_instance_arg,
    add_json_flag,
    add_property_args,
    add_verbose_flag,
    properties_from_args,
)
from ._output import OutputFormatter, format_json

__all__ = [
    "OutputFormatter",
    "format_json",
    "add_instance_arg",
    "add_json_flag",
    "add_property_args",
    "add_verbose_flag",
    "properties_from_args",
]
