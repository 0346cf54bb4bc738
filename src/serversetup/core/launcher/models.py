from __future__ import annotations

import re
import shlex
import socket
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from serversetup.core.config.properties import SystemProperties
from serversetup.core.exceptions import LauncherError
from serversetup.data import defaults_section

PROP_PREFIX = "jar.executor."
PROP_SERVER_PORT = PROP_PREFIX + "server.port"
PROP_JAR_FOLDER = PROP_PREFIX + "jar.folder"
PROP_JAR_NAME_REGEXP = PROP_PREFIX + "jar.name.regexp"
PROP_JAVA_EXECUTABLE = PROP_PREFIX + "java.executable"
PROP_VM_OPTIONS = PROP_PREFIX + "vm.options"
PROP_JAR_OPTIONS = PROP_PREFIX + "jar.options"
PROP_WORK_FOLDER = PROP_PREFIX + "work.folder"
PROP_EXIT_TIMEOUT_SECONDS = PROP_PREFIX + "exit.timeout.seconds"


def find_free_port(host: str = "127.0.0.1") -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind((host, 0))
        return int(s.getsockname()[1])


def find_jar(folder: Path, name_regexp: str) -> Path:
    """Return the first file in ``folder`` (sorted by name) whose name fully matches ``name_regexp``."""
    if not folder.is_dir():
        raise LauncherError(f"Jar folder not found: {folder}", context={"folder": str(folder)})
    try:
        pattern = re.compile(name_regexp)
    except re.error as exc:
        raise LauncherError(
            f"Invalid {PROP_JAR_NAME_REGEXP}: {name_regexp!r} ({exc})",
            context={"regexp": name_regexp},
        ) from exc

    for candidate in sorted(folder.iterdir()):
        if candidate.is_file() and pattern.fullmatch(candidate.name):
            return candidate
    raise LauncherError(
        f"No jar matching {name_regexp!r} found in {folder}",
        context={"folder": str(folder), "regexp": name_regexp},
    )


@dataclass(frozen=True)
class LauncherConfig:
    """How to launch the server jar."""

    jar_path: Path
    server_port: int
    java_executable: str = "java"
    vm_options: list[str] = field(default_factory=list)
    jar_options: list[str] = field(default_factory=list)
    work_folder: Path | None = None
    exit_timeout_seconds: float = 30.0

    @classmethod
    def from_properties(cls, properties: Mapping[str, Any]) -> "LauncherConfig":
        props = properties if isinstance(properties, SystemProperties) else SystemProperties(properties)
        defaults = defaults_section("launcher")

        folder_raw = props.get_nonblank(PROP_JAR_FOLDER)
        regexp = props.get_nonblank(PROP_JAR_NAME_REGEXP)
        if folder_raw is None or regexp is None:
            raise LauncherError(
                f"{PROP_JAR_FOLDER} and {PROP_JAR_NAME_REGEXP} must be set to launch the server",
                context={"folder": folder_raw, "regexp": regexp},
            )
        jar_path = find_jar(Path(folder_raw).expanduser().resolve(), regexp)

        try:
            port = props.get_int(PROP_SERVER_PORT, int(defaults.get("server_port", 8765)))
        except ValueError as exc:
            raise LauncherError(str(exc), context={"property": PROP_SERVER_PORT}) from exc
        if port == 0:
            port = find_free_port()

        work_raw = props.get_nonblank(PROP_WORK_FOLDER)

        return cls(
            jar_path=jar_path,
            server_port=port,
            java_executable=props.get_nonblank(PROP_JAVA_EXECUTABLE) or str(defaults.get("java_executable", "java")),
            vm_options=shlex.split(props.get(PROP_VM_OPTIONS, "")),
            jar_options=shlex.split(props.get(PROP_JAR_OPTIONS, "")),
            work_folder=Path(work_raw).expanduser().resolve() if work_raw else None,
            exit_timeout_seconds=props.get_float(
                PROP_EXIT_TIMEOUT_SECONDS, float(defaults.get("exit_timeout_seconds", 30))
            ),
        )

    def command(self) -> list[str]:
        return [
            self.java_executable,
            *self.vm_options,
            "-jar",
            str(self.jar_path),
            "-p",
            str(self.server_port),
            *self.jar_options,
        ]


__all__ = [
    "LauncherConfig",
    "find_free_port",
    "find_jar",
    "PROP_SERVER_PORT",
    "PROP_JAR_FOLDER",
    "PROP_JAR_NAME_REGEXP",
    "PROP_JAVA_EXECUTABLE",
    "PROP_VM_OPTIONS",
    "PROP_JAR_OPTIONS",
    "PROP_WORK_FOLDER",
    "PROP_EXIT_TIMEOUT_SECONDS",
]
