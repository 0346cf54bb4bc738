"""
serversetup bundles command.

SUMMARY: List the additional bundles selected for installation
"""
from __future__ import annotations

import argparse
import sys
from typing import Any, Dict, List

from serversetup.cli import (
    OutputFormatter,
    add_json_flag,
    add_property_args,
    add_verbose_flag,
    properties_from_args,
)
from serversetup.core.clients.console import ConsoleClient
from serversetup.core.clients.http import ClientError
from serversetup.core.exceptions import ServerSetupError
from serversetup.core.instance import select_bundles

SUMMARY = "List the additional bundles selected for installation"


def register_args(parser: argparse.ArgumentParser) -> None:
    add_property_args(parser)
    add_json_flag(parser)
    add_verbose_flag(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    try:
        selected = select_bundles(properties_from_args(args))
    except ServerSetupError as e:
        formatter.error(e, error_code="bundles_error")
        return 1

    rows: List[Dict[str, Any]] = []
    for path in selected:
        try:
            name = ConsoleClient.get_bundle_symbolic_name(path)
        except ClientError:
            name = None
        rows.append({"path": str(path), "symbolic_name": name})

    if formatter.json_mode:
        formatter.json_output({"bundles": rows})
    elif not rows:
        formatter.text("No additional bundles selected.")
    else:
        for row in rows:
            formatter.text(f"{row['path']}  {row['symbolic_name'] or '?'}")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    sys.exit(main(parser.parse_args()))
