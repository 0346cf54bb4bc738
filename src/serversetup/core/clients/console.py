"""Client for the OSGi web console bundle endpoints."""
from __future__ import annotations

import json
import zipfile
from enum import Enum
from pathlib import Path
from typing import Dict, Optional

from .http import ClientError, HttpClient

CONSOLE_BUNDLES_PATH = "/system/console/bundles"
MANIFEST_PATH = "META-INF/MANIFEST.MF"
SYMBOLIC_NAME_HEADER = "Bundle-SymbolicName"


class BundleState(Enum):
    """Bundle states as reported by the web console."""

    INSTALLED = "Installed"
    RESOLVED = "Resolved"
    STARTING = "Starting"
    STOPPING = "Stopping"
    ACTIVE = "Active"
    FRAGMENT = "Fragment"
    UNINSTALLED = "Uninstalled"

    @classmethod
    def from_console(cls, value: str) -> "BundleState":
        for state in cls:
            if state.value.lower() == str(value).strip().lower():
                return state
        raise ClientError(f"Unknown bundle state: {value!r}", context={"state": value})


def read_manifest(archive: Path) -> Dict[str, str]:
    """Return the main attributes of a jar manifest."""
    try:
        with zipfile.ZipFile(archive) as zf:
            raw = zf.read(MANIFEST_PATH).decode("utf-8")
    except (OSError, KeyError, zipfile.BadZipFile) as exc:
        raise ClientError(f"Cannot read manifest of {archive}: {exc}", context={"archive": str(archive)}) from exc

    headers: Dict[str, str] = {}
    last: Optional[str] = None
    for line in raw.splitlines():
        if not line.strip():
            # Main section ends at the first blank line.
            if headers:
                break
            continue
        if line.startswith(" ") and last is not None:
            headers[last] += line[1:]
            continue
        name, sep, value = line.partition(":")
        if not sep:
            continue
        last = name.strip()
        headers[last] = value.strip()
    return headers


class ConsoleClient(HttpClient):
    """HTTP client with web console bundle operations."""

    start_level = 20

    @staticmethod
    def get_bundle_symbolic_name(archive: Path | str) -> str:
        """Return the symbolic name declared in the archive's manifest, without parameters."""
        path = Path(archive)
        value = read_manifest(path).get(SYMBOLIC_NAME_HEADER)
        if not value:
            raise ClientError(
                f"{path} has no {SYMBOLIC_NAME_HEADER} header",
                context={"archive": str(path)},
            )
        return value.split(";", 1)[0].strip()

    def install_bundle(self, archive: Path | str, start: bool) -> None:
        path = Path(archive)
        data = {"action": "install", "bundlestartlevel": str(self.start_level)}
        if start:
            data["bundlestart"] = "start"
        try:
            with path.open("rb") as fh:
                files = {"bundlefile": (path.name, fh, "application/java-archive")}
                # The console answers a successful install with a redirect.
                self.do_post(CONSOLE_BUNDLES_PATH, data=data, files=files, expected_status=302, allow_redirects=False)
        except OSError as exc:
            raise ClientError(f"Cannot read bundle file {path}: {exc}", context={"archive": str(path)}) from exc

    def get_bundle_state(self, symbolic_name: str) -> Optional[BundleState]:
        """Return the bundle state, or None if the bundle is not installed."""
        resp = self.do_get(f"{CONSOLE_BUNDLES_PATH}/{symbolic_name}.json", expected_status=0)
        if resp.status == 404:
            return None
        if resp.status != 200:
            raise ClientError(
                f"Bundle info for {symbolic_name} returned status {resp.status}",
                context={"bundle": symbolic_name, "status": resp.status},
            )
        try:
            payload = json.loads(resp.text)
        except ValueError as exc:
            raise ClientError(f"Invalid bundle info for {symbolic_name}", context={"bundle": symbolic_name}) from exc

        data = payload.get("data") if isinstance(payload, dict) else None
        if not data:
            return None
        return BundleState.from_console(data[0].get("state", ""))

    def start_bundle(self, symbolic_name: str) -> None:
        self.do_post(f"{CONSOLE_BUNDLES_PATH}/{symbolic_name}", data={"action": "start"})

    def uninstall_bundle(self, symbolic_name: str) -> None:
        self.do_post(f"{CONSOLE_BUNDLES_PATH}/{symbolic_name}", data={"action": "uninstall"})


__all__ = ["BundleState", "ConsoleClient", "read_manifest", "CONSOLE_BUNDLES_PATH"]
