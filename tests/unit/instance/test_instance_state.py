from __future__ import annotations

import threading

import pytest

from serversetup.core.exceptions import StateTransitionError
from serversetup.core.instance.state import (
    DEFAULT_INSTANCE_NAME,
    BundlesState,
    InstanceRegistry,
    InstanceState,
    ReadinessState,
    StartupState,
    process_registry,
)


def test_new_state_has_every_concern_pending() -> None:
    state = InstanceState("a")

    assert state.startup is StartupState.NOT_STARTED
    assert state.readiness is ReadinessState.PENDING
    assert state.bundles is BundlesState.PENDING
    assert not state.started
    assert not state.ready
    assert not state.ready_test_failed
    assert not state.extra_bundles_installed
    assert not state.install_bundles_failed
    assert not state.quiet_period_complete
    assert state.base_url is None
    assert state.launcher is None


def test_try_mark_started_reports_only_the_winning_call() -> None:
    state = InstanceState("a")

    assert state.try_mark_started() is True
    assert state.try_mark_started() is False
    assert state.started


def test_try_mark_started_has_exactly_one_winner_across_threads() -> None:
    state = InstanceState("a")
    barrier = threading.Barrier(16)
    results: list[bool] = []
    lock = threading.Lock()

    def worker() -> None:
        barrier.wait(timeout=5)
        won = state.try_mark_started()
        with lock:
            results.append(won)

    threads = [threading.Thread(target=worker) for _ in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)

    assert results.count(True) == 1
    assert len(results) == 16


def test_failed_readiness_is_absorbing() -> None:
    state = InstanceState("a")
    assert state.mark_ready_failed() is True

    with pytest.raises(StateTransitionError) as exc_info:
        state.mark_ready()

    assert exc_info.value.context["concern"] == "readiness"
    assert exc_info.value.context["current"] == "failed"
    assert exc_info.value.context["target"] == "ready"
    assert state.ready_test_failed


def test_installed_bundles_cannot_become_failed() -> None:
    state = InstanceState("a")
    state.mark_bundles_installed()

    with pytest.raises(StateTransitionError):
        state.mark_bundles_failed()
    assert state.mark_bundles_installed() is False


def test_latches_flip_once() -> None:
    state = InstanceState("a")

    assert state.mark_server_info_logged() is True
    assert state.mark_server_info_logged() is False
    assert state.mark_startup_info_provided() is True
    assert state.startup_info_provided


def test_base_url_is_set_once(caplog: pytest.LogCaptureFixture) -> None:
    state = InstanceState("a")

    assert state.set_base_url("http://localhost:1") == "http://localhost:1"
    assert state.set_base_url("http://localhost:1") == "http://localhost:1"
    assert state.set_base_url("http://other:2") == "http://localhost:1"
    assert state.base_url == "http://localhost:1"
    assert "ignoring http://other:2" in caplog.text


def test_launcher_is_created_once() -> None:
    state = InstanceState("a")
    created: list[object] = []

    def factory() -> object:
        obj = object()
        created.append(obj)
        return obj

    first = state.get_or_create_launcher(factory)
    second = state.get_or_create_launcher(factory)

    assert first is second
    assert len(created) == 1


def test_step_lock_is_shared_per_step_name() -> None:
    state = InstanceState("a")

    assert state.step_lock("startup") is state.step_lock("startup")
    assert state.step_lock("startup") is not state.step_lock("readiness")


def test_block_until_released_wakes_all_waiters() -> None:
    state = InstanceState("a")
    entered = threading.Barrier(3)
    returned = threading.Event()
    done: list[int] = []

    def waiter(i: int) -> None:
        entered.wait(timeout=5)
        state.block_until_released()
        done.append(i)
        if len(done) == 2:
            returned.set()

    threads = [threading.Thread(target=waiter, args=(i,), daemon=True) for i in range(2)]
    for t in threads:
        t.start()
    entered.wait(timeout=5)

    assert not returned.wait(timeout=0.2)
    # Waiters may not have reached the condition yet; release until they return.
    for _ in range(50):
        state.release_blocked()
        if returned.wait(timeout=0.1):
            break

    assert sorted(done) == [0, 1]


def test_snapshot_reports_state_values() -> None:
    state = InstanceState("a")
    state.set_base_url("http://h:1")
    state.try_mark_started()
    state.mark_ready()

    snap = state.snapshot()

    assert snap["base_url"] == "http://h:1"
    assert snap["startup"] == "started"
    assert snap["readiness"] == "ready"
    assert snap["bundles"] == "pending"


def test_registry_returns_one_state_per_name() -> None:
    registry = InstanceRegistry()

    a = registry.get("a")
    assert registry.get("a") is a
    assert registry.get("b") is not a
    assert registry.get().name == DEFAULT_INSTANCE_NAME
    assert "a" in registry
    assert registry.names() == ["a", "b", DEFAULT_INSTANCE_NAME]


def test_process_registry_is_shared() -> None:
    assert process_registry() is process_registry()
