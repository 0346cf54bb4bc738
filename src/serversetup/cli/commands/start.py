"""
serversetup start command.

SUMMARY: Start or attach to the server and wait until it is ready
"""
from __future__ import annotations

import argparse
import logging
import sys

from serversetup.cli import (
    OutputFormatter,
    add_instance_arg,
    add_json_flag,
    add_property_args,
    add_verbose_flag,
    properties_from_args,
)
from serversetup.core.config.instance import KEEP_JAR_RUNNING_PROP
from serversetup.core.exceptions import ServerSetupError
from serversetup.core.instance import ServerInstance, process_registry

logger = logging.getLogger(__name__)

SUMMARY = "Start or attach to the server and wait until it is ready"


def register_args(parser: argparse.ArgumentParser) -> None:
    add_property_args(parser)
    add_instance_arg(parser)
    parser.add_argument(
        "--keep-running",
        action="store_true",
        help=f"Keep the server up until this process is killed (same as -D {KEEP_JAR_RUNNING_PROP}=true)",
    )
    add_json_flag(parser)
    add_verbose_flag(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    try:
        props = properties_from_args(args)
        keep_running = bool(getattr(args, "keep_running", False)) or props.get_bool(KEEP_JAR_RUNNING_PROP)
        # Block only after the base URL has been printed.
        props = props.with_overrides({KEEP_JAR_RUNNING_PROP: "false"})

        state = process_registry().get(args.instance)
        instance = ServerInstance(state, props)
        base_url = instance.server_base_url
    except ServerSetupError as e:
        formatter.error(e, error_code="start_error")
        return 1

    formatter.success(
        {
            "instance": state.name,
            "base_url": base_url,
            "started_by_this_process": instance.server_started_by_this_instance,
            "state": state.snapshot(),
        },
        base_url,
    )
    sys.stdout.flush()

    if keep_running:
        logger.info("Server at %s stays up until this process is killed", base_url)
        try:
            state.block_until_released()
        except KeyboardInterrupt:
            logger.info("Interrupted, exiting")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    sys.exit(main(parser.parse_args()))
