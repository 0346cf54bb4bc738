from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from serversetup.data import defaults_section

from .properties import SystemProperties
from .timeouts import TimeoutsProvider

TEST_SERVER_URL_PROP = "test.server.url"
LEGACY_SERVER_URL_PROP = "launchpad.http.server.url"
TEST_SERVER_USERNAME_PROP = "test.server.username"
TEST_SERVER_PASSWORD_PROP = "test.server.password"
SERVER_HOSTNAME_PROP = "test.server.hostname"
SERVER_READY_TIMEOUT_PROP = "server.ready.timeout.seconds"
SERVER_READY_TIMEOUT_INITIAL_DELAY_PROP = "server.ready.timeout.initial.delay.seconds"
SERVER_READY_TIMEOUT_DELAY_PROP = "server.ready.timeout.delay.seconds"
SERVER_READY_QUIET_PERIOD_PROP = "server.ready.quiet.period.seconds"
SERVER_READY_PROP_PREFIX = "server.ready.path"
KEEP_JAR_RUNNING_PROP = "keepJarRunning"
ADDITIONAL_BUNDLES_PATH_PROP = "additional.bundles.path"
ADDITIONAL_BUNDLES_UNINSTALL_PROP = "additional.bundles.uninstall"
BUNDLE_TO_INSTALL_PREFIX = "sling.additional.bundle"
BUNDLE_INSTALL_TIMEOUT_PROP = "bundle.install.timeout.seconds"
START_BUNDLES_TIMEOUT_PROP = "start.bundles.timeout.seconds"


@dataclass(frozen=True)
class InstanceConfig:
    """Per-orchestrator settings, resolved once from properties.

    All durations are in seconds and already scaled by the timeout multiplier.
    """

    server_url: str | None = None
    hostname: str = "localhost"
    username: str = "admin"
    password: str = "admin"
    ready_timeout_seconds: float = 60.0
    ready_initial_delay_seconds: float = 0.0
    ready_delay_seconds: float = 1.0
    quiet_period_seconds: float = 0.0
    ready_paths: tuple[str, ...] = ()
    keep_jar_running: bool = False
    uninstall_bundles_requested: bool = False
    install_timeout_seconds: float = 10.0
    start_timeout_seconds: float = 30.0
    bundle_poll_interval_seconds: float = 0.5
    request_timeout_seconds: float = 10.0

    @classmethod
    def from_properties(cls, properties: Mapping[str, Any]) -> "InstanceConfig":
        props = properties if isinstance(properties, SystemProperties) else SystemProperties(properties)
        timeouts = TimeoutsProvider.from_properties(props)

        server = defaults_section("server")
        readiness = defaults_section("readiness")
        bundles = defaults_section("bundles")
        http = defaults_section("http")

        server_url = props.get_nonblank(TEST_SERVER_URL_PROP)
        if server_url is None:
            server_url = props.get_nonblank(LEGACY_SERVER_URL_PROP)

        def _scaled(key: str, default: Any) -> float:
            return timeouts.get_timeout(props.get_float(key, float(default)))

        return cls(
            server_url=server_url,
            hostname=props.get_nonblank(SERVER_HOSTNAME_PROP) or str(server.get("hostname", "localhost")),
            username=props.get_nonblank(TEST_SERVER_USERNAME_PROP) or str(server.get("username", "admin")),
            password=props.get_nonblank(TEST_SERVER_PASSWORD_PROP) or str(server.get("password", "admin")),
            ready_timeout_seconds=_scaled(SERVER_READY_TIMEOUT_PROP, readiness.get("timeout_seconds", 60)),
            ready_initial_delay_seconds=_scaled(
                SERVER_READY_TIMEOUT_INITIAL_DELAY_PROP, readiness.get("initial_delay_seconds", 0)
            ),
            ready_delay_seconds=_scaled(SERVER_READY_TIMEOUT_DELAY_PROP, readiness.get("delay_seconds", 1)),
            quiet_period_seconds=_scaled(SERVER_READY_QUIET_PERIOD_PROP, readiness.get("quiet_period_seconds", 0)),
            ready_paths=tuple(props.prefixed_values(SERVER_READY_PROP_PREFIX)),
            keep_jar_running=props.get_bool(KEEP_JAR_RUNNING_PROP),
            uninstall_bundles_requested=props.get_bool(ADDITIONAL_BUNDLES_UNINSTALL_PROP),
            install_timeout_seconds=_scaled(BUNDLE_INSTALL_TIMEOUT_PROP, bundles.get("install_timeout_seconds", 10)),
            start_timeout_seconds=_scaled(START_BUNDLES_TIMEOUT_PROP, bundles.get("start_timeout_seconds", 30)),
            bundle_poll_interval_seconds=float(bundles.get("poll_interval_seconds", 0.5)),
            request_timeout_seconds=float(http.get("request_timeout_seconds", 10)),
        )

    @property
    def pre_provisioned(self) -> bool:
        """True when the server URL was supplied and no process is launched."""
        return self.server_url is not None

    @property
    def uninstall_additional_bundles(self) -> bool:
        # Bundles on a pre-provisioned server are not owned by this run.
        return self.uninstall_bundles_requested and not self.pre_provisioned


__all__ = [
    "InstanceConfig",
    "TEST_SERVER_URL_PROP",
    "LEGACY_SERVER_URL_PROP",
    "TEST_SERVER_USERNAME_PROP",
    "TEST_SERVER_PASSWORD_PROP",
    "SERVER_HOSTNAME_PROP",
    "SERVER_READY_TIMEOUT_PROP",
    "SERVER_READY_TIMEOUT_INITIAL_DELAY_PROP",
    "SERVER_READY_TIMEOUT_DELAY_PROP",
    "SERVER_READY_QUIET_PERIOD_PROP",
    "SERVER_READY_PROP_PREFIX",
    "KEEP_JAR_RUNNING_PROP",
    "ADDITIONAL_BUNDLES_PATH_PROP",
    "ADDITIONAL_BUNDLES_UNINSTALL_PROP",
    "BUNDLE_TO_INSTALL_PREFIX",
    "BUNDLE_INSTALL_TIMEOUT_PROP",
    "START_BUNDLES_TIMEOUT_PROP",
]
