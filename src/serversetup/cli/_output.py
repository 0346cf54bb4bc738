"""CLI output formatting in JSON or text mode."""
from __future__ import annotations

import json
import sys
from typing import Any, Dict, Optional

from serversetup.core.exceptions import ServerSetupError


class OutputFormatter:
    """Output formatter shared by the CLI commands."""

    def __init__(self, json_mode: bool = False, indent: int = 2):
        self.json_mode = json_mode
        self.indent = indent

    def success(
        self,
        data: Dict[str, Any],
        message: str,
        *,
        status: str = "success",
    ) -> None:
        """Print ``data`` as JSON in JSON mode, ``message`` otherwise."""
        if self.json_mode:
            output = {"status": status, **data}
            print(format_json(output, self.indent))
        else:
            print(message)

    def error(
        self,
        error: Exception,
        message: Optional[str] = None,
        *,
        error_code: str = "error",
    ) -> None:
        """Print an error to stderr.

        ``ServerSetupError`` payloads carry their class name and context.
        """
        msg = message or str(error)
        if self.json_mode:
            if isinstance(error, ServerSetupError):
                output: Dict[str, Any] = {"error": error_code, **error.to_json_error()}
                output["message"] = msg
            else:
                output = {"error": error_code, "message": msg}
            print(format_json(output, self.indent), file=sys.stderr)
        else:
            print(f"Error: {msg}", file=sys.stderr)

    def json_output(self, data: Any) -> None:
        print(format_json(data, self.indent))

    def text(self, message: str) -> None:
        print(message)

    def text_kv(self, key: str, value: Any, prefix: str = "  ") -> None:
        if not self.json_mode:
            print(f"{prefix}{key}: {value}")


def format_json(data: Any, indent: int = 2) -> str:
    """Serialize ``data`` for CLI output; non-JSON values are rendered with ``str``."""
    return json.dumps(data, indent=indent, default=str)


__all__ = ["OutputFormatter", "format_json"]
