from __future__ import annotations

import atexit
import logging
import os
import subprocess
import threading
from collections.abc import Mapping
from typing import Any, Optional

import psutil

from serversetup.core.exceptions import LauncherError

from .models import LauncherConfig

logger = logging.getLogger(__name__)


def _popen_kwargs() -> dict[str, Any]:
    if os.name == "posix":
        return {"start_new_session": True}
    if os.name == "nt":
        creationflags = getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", None)
        if isinstance(creationflags, int):
            return {"creationflags": creationflags}
    return {}


def terminate_process_tree(pid: int, *, timeout_seconds: float) -> None:
    """Terminate ``pid`` and its children, killing whatever survives the timeout."""
    try:
        root = psutil.Process(pid)
    except psutil.NoSuchProcess:
        return

    try:
        procs = root.children(recursive=True)
    except psutil.NoSuchProcess:
        procs = []
    procs.append(root)

    for proc in procs:
        try:
            proc.terminate()
        except psutil.NoSuchProcess:
            pass

    _, alive = psutil.wait_procs(procs, timeout=max(0.1, float(timeout_seconds)))
    for proc in alive:
        logger.warning("Process %s did not exit after %ss, killing it", proc.pid, timeout_seconds)
        try:
            proc.kill()
        except psutil.NoSuchProcess:
            pass


class JarLauncher:
    """Launches the server jar as a child process; started at most once."""

    def __init__(self, config: LauncherConfig) -> None:
        self.config = config
        self._process: Optional[subprocess.Popen[bytes]] = None
        self._lock = threading.Lock()

    @classmethod
    def from_properties(cls, properties: Mapping[str, Any]) -> "JarLauncher":
        return cls(LauncherConfig.from_properties(properties))

    @property
    def server_port(self) -> int:
        return self.config.server_port

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process is not None else None

    def is_running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def start(self) -> None:
        with self._lock:
            if self._process is not None:
                raise LauncherError(
                    f"Server jar {self.config.jar_path.name} was already started",
                    context={"pid": self._process.pid},
                )

            cwd = self.config.work_folder
            if cwd is not None:
                cwd.mkdir(parents=True, exist_ok=True)

            argv = self.config.command()
            logger.info("Starting server: %s (cwd=%s)", " ".join(argv), cwd or os.getcwd())
            try:
                self._process = subprocess.Popen(  # noqa: S603
                    argv,
                    cwd=str(cwd) if cwd is not None else None,
                    stdin=subprocess.DEVNULL,
                    **_popen_kwargs(),
                )
            except OSError as exc:
                raise LauncherError(
                    f"Cannot start {argv[0]}: {exc}",
                    context={"command": argv},
                ) from exc
            atexit.register(self.stop)
            logger.info("Server process started (pid=%s, port=%s)", self._process.pid, self.server_port)

    def stop(self) -> None:
        with self._lock:
            proc = self._process
            if proc is None or proc.poll() is not None:
                return
            logger.info("Stopping server process %s", proc.pid)
            terminate_process_tree(proc.pid, timeout_seconds=self.config.exit_timeout_seconds)
            try:
                proc.wait(timeout=1.0)
            except subprocess.TimeoutExpired:
                logger.warning("Server process %s still running after stop", proc.pid)


__all__ = ["JarLauncher", "terminate_process_tree"]
