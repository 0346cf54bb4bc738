"""Per-test entry point that brings the shared server to a usable state.

A ``ServerInstance`` is cheap and short-lived: tests create one each (or per
class) and call ``ensure_ready()`` as often as they like. All of them point at
the same ``InstanceState``, so the server is launched once, probed until ready
once, gets its additional bundles installed once and waits out its quiet
period once, whichever thread gets there first.
"""
from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, List, Optional

from serversetup.core.clients.bundles import BundlesInstaller
from serversetup.core.clients.console import ConsoleClient
from serversetup.core.config.instance import (
    KEEP_JAR_RUNNING_PROP,
    TEST_SERVER_URL_PROP,
    InstanceConfig,
)
from serversetup.core.config.properties import SystemProperties
from serversetup.core.exceptions import (
    LauncherError,
    ServerSetupError,
    StartupConflictError,
)
from serversetup.core.launcher import JarLauncher

from .bundles import AdditionalBundlesInstaller, select_bundles
from .readiness import ReadinessProber
from .state import InstanceState

logger = logging.getLogger(__name__)


class ServerInstance:
    """Orchestrates startup, readiness, bundle installation and quiet period."""

    def __init__(
        self,
        state: InstanceState,
        properties: Optional[Mapping[str, Any]] = None,
        *,
        launcher_factory: Callable[[SystemProperties], Any] = JarLauncher.from_properties,
        client_factory: Callable[..., ConsoleClient] = ConsoleClient,
        installer_factory: Callable[..., BundlesInstaller] = BundlesInstaller,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.state = state
        self.properties = properties if isinstance(properties, SystemProperties) else SystemProperties(properties)
        self.config = InstanceConfig.from_properties(self.properties)
        self._launcher_factory = launcher_factory
        self._installer_factory = installer_factory
        self._sleep = sleep
        self._clock = clock
        self._server_started_by_this_instance = False
        self._bundles_installer: Optional[BundlesInstaller] = None
        self._installer_lock = threading.Lock()

        if self.config.pre_provisioned:
            base_url = self.state.set_base_url(self.config.server_url or "")
            # Not a conflict: the server was started by someone else.
            self.state.try_mark_started()
        else:
            with self.state.lock:
                launcher = self.state.get_or_create_launcher(self._create_launcher)
            base_url = self.state.set_base_url(f"http://{self.config.hostname}:{launcher.server_port}")

        self._client = client_factory(
            base_url,
            self.config.username,
            self.config.password,
            timeout=self.config.request_timeout_seconds,
        )

        if self.state.mark_server_info_logged():
            logger.info("Server base URL=%s", base_url)

    def _create_launcher(self) -> Any:
        try:
            return self._launcher_factory(self.properties)
        except ServerSetupError:
            logger.error("Server launcher setup failed for instance %s", self.state.name)
            raise
        except Exception as exc:
            logger.error("Server launcher setup failed for instance %s: %s", self.state.name, exc)
            raise LauncherError(f"Server launcher setup failed: {exc}", context={"instance": self.state.name}) from exc

    # --- Accessors -------------------------------------------------------
    @property
    def server_base_url(self) -> str:
        """Ensure the server is ready and return its base URL."""
        self.ensure_ready()
        return self.state.base_url or ""

    @property
    def server_username(self) -> str:
        return self.config.username

    @property
    def server_password(self) -> str:
        return self.config.password

    @property
    def console_client(self) -> ConsoleClient:
        """Ensure the server is ready and return the web console client."""
        self.ensure_ready()
        return self._client

    @property
    def http_client(self) -> ConsoleClient:
        """The HTTP client for the server; does not start or wait for anything."""
        return self._client

    @property
    def server_started_by_this_instance(self) -> bool:
        return self._server_started_by_this_instance

    @property
    def bundles_installer(self) -> BundlesInstaller:
        with self._installer_lock:
            if self._bundles_installer is None:
                self._bundles_installer = self._installer_factory(
                    self._client,
                    poll_interval=self.config.bundle_poll_interval_seconds,
                    sleep=self._sleep,
                    clock=self._clock,
                )
            return self._bundles_installer

    # --- Lifecycle -------------------------------------------------------
    def ensure_ready(self) -> None:
        """Start, probe, install and settle the server if not done yet.

        Safe to call any number of times from any number of threads; once the
        instance is ready this returns without network calls (unless
        ``keepJarRunning`` is set, in which case it blocks).
        """
        try:
            self.start_server_if_needed()
            self.wait_for_server_ready()
            self.install_additional_bundles()
            self.wait_for_quiet_period()
        except ServerSetupError:
            raise
        except Exception as exc:
            logger.error("Unexpected error while setting up server %s: %s", self.state.base_url, exc)
            raise ServerSetupError(
                f"Server setup failed: {exc}",
                context={"instance": self.state.name, "base_url": self.state.base_url},
            ) from exc
        self.block_if_requested()

    def start_server_if_needed(self) -> None:
        if (
            self.state.started
            and not self._server_started_by_this_instance
            and not self.state.startup_info_provided
        ):
            logger.info(
                "%s was set: not starting server jar (%s)",
                TEST_SERVER_URL_PROP,
                self.state.base_url,
            )

        if not self.state.started:
            with self.state.step_lock("startup"):
                if not self.state.started:
                    self.state.launcher.start()
                    self._server_started_by_this_instance = True
                    if not self.state.try_mark_started():
                        raise StartupConflictError(
                            f"A server is already started at {self.state.base_url}",
                            context={"instance": self.state.name, "base_url": self.state.base_url},
                        )
        self.state.mark_startup_info_provided()

    def wait_for_server_ready(self) -> None:
        if self.state.ready:
            return
        prober = ReadinessProber(
            self.state,
            self._client,
            username=self.config.username,
            sleep=self._sleep,
            clock=self._clock,
        )
        prober.wait_for_ready(
            self.config.ready_paths,
            self.config.ready_timeout_seconds,
            self.config.ready_initial_delay_seconds,
            self.config.ready_delay_seconds,
        )

    def install_additional_bundles(self) -> None:
        if self.state.extra_bundles_installed:
            return
        installer = AdditionalBundlesInstaller(
            self.state,
            self.bundles_installer,
            install_timeout_seconds=self.config.install_timeout_seconds,
            start_timeout_seconds=self.config.start_timeout_seconds,
        )
        installer.install_additional_bundles(self.get_bundles_to_install())

    def wait_for_quiet_period(self) -> None:
        """Sleep for the configured quiet period, once per instance."""
        if self.state.quiet_period_complete:
            return
        with self.state.step_lock("quiet_period"):
            if self.state.quiet_period_complete:
                return
            seconds = self.config.quiet_period_seconds
            if seconds > 0:
                logger.info("Waiting %s seconds as a quiet period", seconds)
                self._sleep(seconds)
            self.state.mark_quiet_period_complete()

    def block_if_requested(self) -> None:
        if not self.config.keep_jar_running:
            return
        logger.info(
            "%s set to true - blocking so that the server at %s stays up. Kill this process to exit.",
            KEEP_JAR_RUNNING_PROP,
            self.state.base_url,
        )
        self.state.block_until_released()

    def get_bundles_to_install(self) -> List[Path]:
        return select_bundles(self.properties)

    # --- Teardown --------------------------------------------------------
    def uninstall_additional_bundles_if_necessary(self) -> None:
        if self.config.uninstall_additional_bundles:
            logger.info("Uninstalling additional bundles...")
            self.uninstall_additional_bundles()

    def uninstall_additional_bundles(self) -> None:
        # Cleanup must not mask the outcome of the test that ran before it.
        try:
            self.bundles_installer.uninstall_bundles(self.get_bundles_to_install())
        except Exception as exc:
            logger.info("Exception while uninstalling additional bundles: %s", exc)


__all__ = ["ServerInstance"]
