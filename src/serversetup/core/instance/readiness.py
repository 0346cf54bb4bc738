"""Readiness probing: poll configured paths until all return the expected content.

A readiness path spec has the form ``path[?query][:expected[:regexp]]``.
The server is ready once a GET on every path returns status 200 and a body
that contains ``expected`` (or matches it as a regular expression when the
third segment is literally ``regexp``).
"""
from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import List, Optional, Protocol, Tuple
from urllib.parse import unquote_plus, urlsplit

from serversetup.core.clients.http import HttpResponse
from serversetup.core.exceptions import (
    ConfigurationError,
    ReadinessTimeoutError,
    TransportError,
)

from .state import InstanceState

logger = logging.getLogger(__name__)

REGEXP_MODE = "regexp"

Param = Tuple[str, Optional[str]]


class ProbeClient(Protocol):
    def url_for(self, path: str) -> str: ...

    def do_get(
        self,
        path: str,
        params: Optional[Sequence[Param]] = None,
        expected_status: int = 200,
    ) -> HttpResponse: ...


def extract_params(query: str) -> List[Param]:
    """Decode a query string into ``(name, value)`` pairs.

    A pair without ``=`` yields a ``None`` value; an empty query yields no pairs.
    """
    params: List[Param] = []
    if not query:
        return params
    for pair in query.split("&"):
        if not pair:
            continue
        idx = pair.find("=")
        if idx > 0:
            key = unquote_plus(pair[:idx])
            value = unquote_plus(pair[idx + 1 :]) if len(pair) > idx + 1 else None
        else:
            key = unquote_plus(pair)
            value = None
        params.append((key, value))
    return params


@dataclass(frozen=True)
class ReadyPath:
    spec: str
    path: str
    params: Tuple[Param, ...] = ()
    expected: str = ""
    regexp: bool = False

    @classmethod
    def parse(cls, spec: str) -> "ReadyPath":
        segments = str(spec).split(":")
        raw_path = segments[0].strip()
        if not raw_path:
            raise ConfigurationError(f"Readiness path spec has no path: {spec!r}", context={"spec": spec})

        expected = segments[1] if len(segments) > 1 else ""
        regexp = len(segments) > 2 and segments[2] == REGEXP_MODE
        if regexp:
            try:
                re.compile(expected)
            except re.error as exc:
                raise ConfigurationError(
                    f"Invalid readiness pattern in {spec!r}: {exc}",
                    context={"spec": spec},
                ) from exc

        try:
            parts = urlsplit(raw_path)
        except ValueError as exc:
            raise ConfigurationError(f"Invalid readiness path {raw_path!r}: {exc}", context={"spec": spec}) from exc

        return cls(
            spec=str(spec),
            path=parts.path or "/",
            params=tuple(extract_params(parts.query)),
            expected=expected,
            regexp=regexp,
        )

    def check(self, response: HttpResponse) -> None:
        if self.regexp:
            response.check_content_regexp(self.expected)
        else:
            response.check_content_contains(self.expected)


def parse_ready_paths(specs: Iterable[str]) -> List[ReadyPath]:
    """Parse path specs, logging and skipping malformed ones."""
    parsed: List[ReadyPath] = []
    for spec in specs:
        try:
            parsed.append(ReadyPath.parse(spec))
        except ConfigurationError as exc:
            logger.warning("Ignoring readiness path: %s", exc)
    return parsed


class ReadinessProber:
    """Waits until the server answers every readiness path as expected."""

    def __init__(
        self,
        state: InstanceState,
        client: ProbeClient,
        *,
        username: str = "",
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.state = state
        self.client = client
        self.username = username
        self._sleep = sleep
        self._clock = clock

    def wait_for_ready(
        self,
        paths: Sequence[str],
        timeout_seconds: float,
        initial_delay_seconds: float = 0.0,
        delay_seconds: float = 1.0,
    ) -> None:
        if self.state.ready:
            return
        self._raise_if_failed()

        with self.state.step_lock("readiness"):
            if self.state.ready:
                return
            self._raise_if_failed()
            self._probe(paths, timeout_seconds, initial_delay_seconds, delay_seconds)

    def _raise_if_failed(self) -> None:
        if self.state.ready_test_failed:
            raise ReadinessTimeoutError(
                "Server is not ready according to previous tests",
                context={"instance": self.state.name},
            )

    def _probe(
        self,
        specs: Sequence[str],
        timeout_seconds: float,
        initial_delay_seconds: float,
        delay_seconds: float,
    ) -> None:
        logger.info(
            "Will wait up to %s seconds for server to become ready with a %s second initial delay "
            "and %s seconds between each check",
            timeout_seconds,
            initial_delay_seconds,
            delay_seconds,
        )
        deadline = self._clock() + float(timeout_seconds)
        ready_paths = parse_ready_paths(specs)

        if initial_delay_seconds > 0:
            self._sleep(initial_delay_seconds)

        logger.info(
            "Checking that GET requests return expected content (timeout=%s seconds): %s",
            timeout_seconds,
            [p.spec for p in ready_paths],
        )
        failing: List[str] = [p.spec for p in ready_paths]
        while self._clock() < deadline:
            failing = [p.spec for p in ready_paths if not self._probe_once(p)]
            if not failing:
                self.state.mark_ready()
                logger.info("All %s paths return expected content, server ready", len(ready_paths))
                return
            self._sleep(delay_seconds)

        self.state.mark_ready_failed()
        msg = f"Server not ready after {timeout_seconds:g} seconds, giving up"
        logger.info(msg)
        raise ReadinessTimeoutError(
            msg,
            context={
                "instance": self.state.name,
                "timeout_seconds": timeout_seconds,
                "failing_paths": failing,
            },
        )

    def _probe_once(self, ready_path: ReadyPath) -> bool:
        try:
            response = self.client.do_get(ready_path.path, list(ready_path.params) or None, 200)
            ready_path.check(response)
        except TransportError as exc:
            logger.debug(
                "Request to %s@%s failed, will retry (%s)",
                self.username,
                self.client.url_for(ready_path.path),
                exc,
            )
            return False
        return True


__all__ = [
    "REGEXP_MODE",
    "ReadinessProber",
    "ReadyPath",
    "extract_params",
    "parse_ready_paths",
]
