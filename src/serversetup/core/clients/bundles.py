"""Batch bundle operations on top of the console client."""
from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from typing import Optional

from .console import BundleState, ConsoleClient
from .http import ClientError

logger = logging.getLogger(__name__)

_STARTED_STATES = {BundleState.ACTIVE, BundleState.FRAGMENT}


class BundleTimeoutError(ClientError):
    """Raised when bundles do not reach the expected state in time."""


class BundlesInstaller:
    """Install, start and uninstall sets of bundles and wait for their state."""

    def __init__(
        self,
        client: ConsoleClient,
        *,
        poll_interval: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.client = client
        self.poll_interval = poll_interval
        self._sleep = sleep
        self._clock = clock

    def install_bundles(self, archives: Iterable[Path], start: bool) -> None:
        for archive in archives:
            logger.info("Installing bundle %s (start=%s)", archive, start)
            self.client.install_bundle(archive, start)

    def uninstall_bundles(self, archives: Iterable[Path]) -> None:
        for archive in archives:
            name = self.client.get_bundle_symbolic_name(archive)
            logger.info("Uninstalling bundle %s (%s)", name, archive)
            self.client.uninstall_bundle(name)

    def is_installed(self, symbolic_name: str) -> bool:
        return self.client.get_bundle_state(symbolic_name) is not None

    def is_started(self, symbolic_name: str) -> bool:
        return self.client.get_bundle_state(symbolic_name) in _STARTED_STATES

    def wait_for_bundles_installed(self, symbolic_names: Sequence[str], timeout_seconds: float) -> None:
        self._wait_until(
            symbolic_names,
            self.is_installed,
            timeout_seconds,
            what="installed",
        )

    def start_all_bundles(self, symbolic_names: Sequence[str], timeout_seconds: float) -> None:
        """Start every bundle that is not started yet and wait until all are.

        Start is sent again on each polling round for bundles that are still
        not started; a failed start request leaves the bundle pending.
        """
        self._wait_until(
            symbolic_names,
            self.is_started,
            timeout_seconds,
            what="started",
            before_check=self._start_if_needed,
        )

    def _start_if_needed(self, symbolic_name: str) -> None:
        if not self.is_started(symbolic_name):
            logger.info("Starting bundle %s", symbolic_name)
            self.client.start_bundle(symbolic_name)

    def _wait_until(
        self,
        symbolic_names: Sequence[str],
        check: Callable[[str], bool],
        timeout_seconds: float,
        *,
        what: str,
        before_check: Optional[Callable[[str], None]] = None,
    ) -> None:
        deadline = self._clock() + max(0.0, float(timeout_seconds))
        pending: list[str] = list(symbolic_names)
        last_error: Optional[ClientError] = None
        while True:
            still_pending: list[str] = []
            for name in pending:
                try:
                    if before_check is not None:
                        before_check(name)
                    ok = check(name)
                except ClientError as exc:
                    last_error = exc
                    ok = False
                if not ok:
                    still_pending.append(name)
            pending = still_pending
            if not pending:
                return
            if self._clock() >= deadline:
                msg = f"Bundles not {what} after {timeout_seconds:g} seconds: {pending}"
                if last_error is not None:
                    msg = f"{msg} (last error: {last_error})"
                raise BundleTimeoutError(msg, context={"pending": pending, "timeout_seconds": timeout_seconds})
            self._sleep(self.poll_interval)


__all__ = ["BundleTimeoutError", "BundlesInstaller"]
