"""Shared per-instance lifecycle: state, readiness, bundles and orchestration."""
from __future__ import annotations

from .bundles import AdditionalBundlesInstaller, BundleDescriptor, list_bundle_files, select_bundles
from .orchestrator import ServerInstance
from .readiness import ReadinessProber, ReadyPath, extract_params, parse_ready_paths
from .state import (
    DEFAULT_INSTANCE_NAME,
    BundlesState,
    InstanceRegistry,
    InstanceState,
    QuietPeriodState,
    ReadinessState,
    StartupState,
    process_registry,
)

__all__ = [
    "AdditionalBundlesInstaller",
    "BundleDescriptor",
    "BundlesState",
    "DEFAULT_INSTANCE_NAME",
    "InstanceRegistry",
    "InstanceState",
    "QuietPeriodState",
    "ReadinessProber",
    "ReadinessState",
    "ReadyPath",
    "ServerInstance",
    "StartupState",
    "extract_params",
    "list_bundle_files",
    "parse_ready_paths",
    "process_registry",
    "select_bundles",
]
