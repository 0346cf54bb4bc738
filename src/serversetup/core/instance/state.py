"""Shared, named lifecycle state of one server under test.

One ``InstanceState`` exists per instance name in a registry and lives for
the whole process. Every orchestrator working on the same server holds a
reference to the same state object, which is the only shared mutable resource
of the lifecycle.

Each lifecycle concern is a small state machine with one-way transitions:

- startup:      NOT_STARTED -> STARTED
- readiness:    PENDING -> READY | FAILED
- bundles:      PENDING -> INSTALLED | FAILED
- quiet period: PENDING -> COMPLETE

``FAILED`` states are absorbing. All fields are read and written under the
state's lock, which is only ever held for field access. Long-running guarded
actions (launching, probing, installing, the quiet period) are serialized by
per-step locks obtained from ``step_lock()``; callers re-check the state after
acquiring a step lock.
"""
from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from enum import Enum
from typing import Any, Dict, List, Optional, TypeVar

from serversetup.core.exceptions import StateTransitionError

logger = logging.getLogger(__name__)

DEFAULT_INSTANCE_NAME = "default"

L = TypeVar("L")


class StartupState(Enum):
    NOT_STARTED = "not_started"
    STARTED = "started"


class ReadinessState(Enum):
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


class BundlesState(Enum):
    PENDING = "pending"
    INSTALLED = "installed"
    FAILED = "failed"


class QuietPeriodState(Enum):
    PENDING = "pending"
    COMPLETE = "complete"


_TRANSITIONS: Dict[str, Dict[Enum, set]] = {
    "startup": {StartupState.NOT_STARTED: {StartupState.STARTED}},
    "readiness": {ReadinessState.PENDING: {ReadinessState.READY, ReadinessState.FAILED}},
    "bundles": {BundlesState.PENDING: {BundlesState.INSTALLED, BundlesState.FAILED}},
    "quiet_period": {QuietPeriodState.PENDING: {QuietPeriodState.COMPLETE}},
}


class InstanceState:
    """Process-lifetime lifecycle record for one named server instance."""

    def __init__(self, name: str = DEFAULT_INSTANCE_NAME) -> None:
        self.name = name
        self._lock = threading.RLock()
        self._released = threading.Condition(self._lock)
        self._release_generation = 0
        self._step_locks: Dict[str, threading.Lock] = {}

        self._base_url: Optional[str] = None
        self._launcher: Any = None
        self._startup = StartupState.NOT_STARTED
        self._readiness = ReadinessState.PENDING
        self._bundles = BundlesState.PENDING
        self._quiet_period = QuietPeriodState.PENDING
        self._startup_info_provided = False
        self._server_info_logged = False

    def __repr__(self) -> str:
        return f"InstanceState(name={self.name!r}, {self.snapshot()!r})"

    # --- Locking ---------------------------------------------------------
    @property
    def lock(self) -> threading.RLock:
        """The lock guarding every field of this state."""
        return self._lock

    def step_lock(self, step: str) -> threading.Lock:
        """Return the lock serializing the guarded action named ``step``."""
        with self._lock:
            return self._step_locks.setdefault(step, threading.Lock())

    # --- Base URL and launcher --------------------------------------------
    @property
    def base_url(self) -> Optional[str]:
        with self._lock:
            return self._base_url

    def set_base_url(self, url: str) -> str:
        """Record the server base URL once and return the effective value."""
        with self._lock:
            if self._base_url is None:
                self._base_url = url
            elif self._base_url != url:
                logger.warning(
                    "Instance %s already uses base URL %s, ignoring %s",
                    self.name,
                    self._base_url,
                    url,
                )
            return self._base_url

    @property
    def launcher(self) -> Any:
        with self._lock:
            return self._launcher

    def get_or_create_launcher(self, factory: Callable[[], L]) -> L:
        """Return the launcher, creating it with ``factory`` if none exists yet."""
        with self._lock:
            if self._launcher is None:
                self._launcher = factory()
            return self._launcher

    # --- Transitions -----------------------------------------------------
    def _transition(self, concern: str, target: Enum) -> bool:
        with self._lock:
            current = getattr(self, f"_{concern}")
            if current is target:
                return False
            if target not in _TRANSITIONS[concern].get(current, set()):
                raise StateTransitionError(
                    f"Illegal {concern} transition for instance {self.name}: "
                    f"{current.value} -> {target.value}",
                    instance=self.name,
                    concern=concern,
                    current=current.value,
                    target=target.value,
                )
            setattr(self, f"_{concern}", target)
            return True

    def _latch(self, attr: str) -> bool:
        with self._lock:
            if getattr(self, attr):
                return False
            setattr(self, attr, True)
            return True

    # startup
    @property
    def startup(self) -> StartupState:
        with self._lock:
            return self._startup

    @property
    def started(self) -> bool:
        return self.startup is StartupState.STARTED

    def try_mark_started(self) -> bool:
        """Flip startup to STARTED; True only for the call that performed the flip."""
        return self._transition("startup", StartupState.STARTED)

    @property
    def startup_info_provided(self) -> bool:
        with self._lock:
            return self._startup_info_provided

    def mark_startup_info_provided(self) -> bool:
        return self._latch("_startup_info_provided")

    @property
    def server_info_logged(self) -> bool:
        with self._lock:
            return self._server_info_logged

    def mark_server_info_logged(self) -> bool:
        return self._latch("_server_info_logged")

    # readiness
    @property
    def readiness(self) -> ReadinessState:
        with self._lock:
            return self._readiness

    @property
    def ready(self) -> bool:
        return self.readiness is ReadinessState.READY

    @property
    def ready_test_failed(self) -> bool:
        return self.readiness is ReadinessState.FAILED

    def mark_ready(self) -> bool:
        return self._transition("readiness", ReadinessState.READY)

    def mark_ready_failed(self) -> bool:
        return self._transition("readiness", ReadinessState.FAILED)

    # bundles
    @property
    def bundles(self) -> BundlesState:
        with self._lock:
            return self._bundles

    @property
    def extra_bundles_installed(self) -> bool:
        return self.bundles is BundlesState.INSTALLED

    @property
    def install_bundles_failed(self) -> bool:
        return self.bundles is BundlesState.FAILED

    def mark_bundles_installed(self) -> bool:
        return self._transition("bundles", BundlesState.INSTALLED)

    def mark_bundles_failed(self) -> bool:
        return self._transition("bundles", BundlesState.FAILED)

    # quiet period
    @property
    def quiet_period_complete(self) -> bool:
        with self._lock:
            return self._quiet_period is QuietPeriodState.COMPLETE

    def mark_quiet_period_complete(self) -> bool:
        return self._transition("quiet_period", QuietPeriodState.COMPLETE)

    # --- Keep-alive ------------------------------------------------------
    def block_until_released(self) -> None:
        """Wait, without timeout, until ``release_blocked()`` is called.

        This is the deliberate non-terminating mode used to keep a launched
        server up for out-of-process test runs.
        """
        with self._released:
            generation = self._release_generation
            while generation == self._release_generation:
                self._released.wait()

    def release_blocked(self) -> None:
        """Wake every thread waiting in ``block_until_released()``."""
        with self._released:
            self._release_generation += 1
            self._released.notify_all()

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "base_url": self._base_url,
                "startup": self._startup.value,
                "readiness": self._readiness.value,
                "bundles": self._bundles.value,
                "quiet_period": self._quiet_period.value,
                "startup_info_provided": self._startup_info_provided,
                "server_info_logged": self._server_info_logged,
            }


class InstanceRegistry:
    """Holds exactly one ``InstanceState`` per instance name."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._states: Dict[str, InstanceState] = {}

    def get(self, name: str = DEFAULT_INSTANCE_NAME) -> InstanceState:
        """Return the state for ``name``, creating it on first access."""
        with self._lock:
            state = self._states.get(name)
            if state is None:
                state = InstanceState(name)
                self._states[name] = state
            return state

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._states)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._states


_PROCESS_REGISTRY = InstanceRegistry()


def process_registry() -> InstanceRegistry:
    """Return the registry shared by the whole process (pytest plugin, CLI)."""
    return _PROCESS_REGISTRY


__all__ = [
    "DEFAULT_INSTANCE_NAME",
    "BundlesState",
    "InstanceRegistry",
    "InstanceState",
    "QuietPeriodState",
    "ReadinessState",
    "StartupState",
    "process_registry",
]
