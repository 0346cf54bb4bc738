"""pytest integration: fixtures handing tests a ready server.

Registered through the ``pytest11`` entry point, so installing the package is
enough. Tests request ``server_instance`` and read ``server_base_url`` (or
call ``ensure_ready()``) to get the shared server started and ready.
"""
from __future__ import annotations

import logging
from typing import Any, Iterator, List, Optional

import pytest

from serversetup.core.config.properties import (
    SystemProperties,
    load_system_properties,
    parse_property_assignments,
)
from serversetup.core.instance import (
    DEFAULT_INSTANCE_NAME,
    InstanceRegistry,
    ServerInstance,
    process_registry,
)

logger = logging.getLogger(__name__)


def pytest_addoption(parser: Any) -> None:
    """Add server setup command line options."""
    group = parser.getgroup("serversetup", "server under test")
    group.addoption(
        "--server-property",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="set a server setup property (repeatable), e.g. test.server.url=http://localhost:8080",
    )
    group.addoption(
        "--server-properties-file",
        action="append",
        default=[],
        metavar="FILE",
        help="YAML file with server setup properties (repeatable)",
    )
    group.addoption(
        "--server-instance",
        action="store",
        default=DEFAULT_INSTANCE_NAME,
        help="name of the shared server instance (default: %(default)s)",
    )


def properties_from_options(
    assignments: Optional[List[str]] = None,
    files: Optional[List[str]] = None,
) -> SystemProperties:
    """Layer properties files, the environment and ``--server-property`` values."""
    return load_system_properties(files or [], overrides=parse_property_assignments(assignments or []))


def pytest_report_header(config: pytest.Config) -> str:
    return f"serversetup: instance={config.getoption('--server-instance')}"


@pytest.fixture(scope="session")
def server_properties(pytestconfig: pytest.Config) -> SystemProperties:
    return properties_from_options(
        pytestconfig.getoption("--server-property"),
        pytestconfig.getoption("--server-properties-file"),
    )


@pytest.fixture(scope="session")
def server_registry() -> InstanceRegistry:
    return process_registry()


@pytest.fixture
def server_instance(
    pytestconfig: pytest.Config,
    server_properties: SystemProperties,
    server_registry: InstanceRegistry,
) -> Iterator[ServerInstance]:
    """A fresh orchestrator bound to the shared server state.

    After the test, additional bundles are uninstalled when this run owns them.
    """
    state = server_registry.get(pytestconfig.getoption("--server-instance"))
    instance = ServerInstance(state, server_properties)
    yield instance
    instance.uninstall_additional_bundles_if_necessary()


__all__ = [
    "properties_from_options",
    "server_instance",
    "server_properties",
    "server_registry",
]
