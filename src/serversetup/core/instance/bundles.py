from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List

from serversetup.core.clients.bundles import BundlesInstaller
from serversetup.core.config.instance import (
    ADDITIONAL_BUNDLES_PATH_PROP,
    BUNDLE_TO_INSTALL_PREFIX,
)
from serversetup.core.config.properties import SystemProperties
from serversetup.core.exceptions import InstallationFailureError
from serversetup.data import defaults_section

from .state import InstanceState

logger = logging.getLogger(__name__)


def _archive_extension() -> str:
    return str(defaults_section("bundles").get("archive_extension", ".jar"))


@dataclass(frozen=True)
class BundleDescriptor:
    """An extension archive and the symbolic name declared in its manifest."""

    path: Path
    symbolic_name: str


def list_bundle_files(directory: Path | str) -> List[Path]:
    """Return the archives in ``directory`` sorted by name.

    An unreadable directory is logged and yields nothing.
    """
    folder = Path(directory).expanduser()
    extension = _archive_extension()
    try:
        names = sorted(os.listdir(folder))
    except OSError as exc:
        logger.info("Cannot read additional bundles directory %s: %s", folder, exc)
        return []
    return [folder / name for name in names if name.endswith(extension) and (folder / name).is_file()]


def select_bundles(properties: Mapping[str, Any]) -> List[Path]:
    """Select the additional bundles to install.

    ``additional.bundles.path`` names one directory or a comma-separated list.
    For each directory, in order, and for each ``sling.additional.bundle*``
    property in ascending key order, every archive whose file name starts
    with the property value is selected.
    """
    props = properties if isinstance(properties, SystemProperties) else SystemProperties(properties)
    raw_paths = props.get_nonblank(ADDITIONAL_BUNDLES_PATH_PROP)
    if raw_paths is None:
        return []

    prefixes = props.prefixed_values(BUNDLE_TO_INSTALL_PREFIX)
    selected: List[Path] = []
    for entry in raw_paths.split(","):
        entry = entry.strip()
        if not entry:
            continue
        files = list_bundle_files(entry)
        for prefix in prefixes:
            selected.extend(f for f in files if f.name.startswith(prefix))
    return selected


class AdditionalBundlesInstaller:
    """Installs the selected bundles once per instance; a failure is final."""

    def __init__(
        self,
        state: InstanceState,
        installer: BundlesInstaller,
        *,
        install_timeout_seconds: float = 10.0,
        start_timeout_seconds: float = 30.0,
    ) -> None:
        self.state = state
        self.installer = installer
        self.install_timeout_seconds = install_timeout_seconds
        self.start_timeout_seconds = start_timeout_seconds

    def install_additional_bundles(self, files: Sequence[Path]) -> None:
        self._raise_if_failed()
        if self.state.extra_bundles_installed:
            return

        with self.state.step_lock("bundles"):
            self._raise_if_failed()
            if self.state.extra_bundles_installed:
                return

            if not files:
                logger.info(
                    "Not installing additional bundles, probably property %s not set",
                    ADDITIONAL_BUNDLES_PATH_PROP,
                )
                self.state.mark_bundles_installed()
                return

            logger.info("Installing additional bundles %s", [f.name for f in files])
            try:
                descriptors = self._install_and_start(files)
            except Exception as exc:
                self.state.mark_bundles_failed()
                logger.info("Exception while installing additional bundles: %s", exc)
                raise InstallationFailureError(
                    f"Could not start all installed bundles: {[str(f) for f in files]}",
                    context={"instance": self.state.name, "bundles": [str(f) for f in files]},
                ) from exc

            self.state.mark_bundles_installed()
            logger.info("%s additional bundles installed and started", len(descriptors))

    def _install_and_start(self, files: Sequence[Path]) -> List[BundleDescriptor]:
        self.installer.install_bundles(files, False)
        descriptors = self.describe(files)
        names = [d.symbolic_name for d in descriptors]
        self.installer.wait_for_bundles_installed(names, self.install_timeout_seconds)
        self.installer.start_all_bundles(names, self.start_timeout_seconds)
        return descriptors

    def describe(self, files: Iterable[Path]) -> List[BundleDescriptor]:
        return [
            BundleDescriptor(path=Path(f), symbolic_name=self.installer.client.get_bundle_symbolic_name(f))
            for f in files
        ]

    def _raise_if_failed(self) -> None:
        if self.state.install_bundles_failed:
            raise InstallationFailureError(
                "Bundles could not be installed, cannot run tests",
                context={"instance": self.state.name},
            )


__all__ = [
    "AdditionalBundlesInstaller",
    "BundleDescriptor",
    "list_bundle_files",
    "select_bundles",
]
