from __future__ import annotations

import pytest

from serversetup.core.exceptions import (
    ConfigurationError,
    InstallationFailureError,
    LauncherError,
    ReadinessTimeoutError,
    ServerSetupError,
    StartupConflictError,
    StateTransitionError,
    TransportError,
)


@pytest.mark.parametrize(
    ("cls", "builtin"),
    [
        (ConfigurationError, ValueError),
        (StartupConflictError, RuntimeError),
        (ReadinessTimeoutError, TimeoutError),
        (InstallationFailureError, RuntimeError),
        (TransportError, ConnectionError),
        (LauncherError, RuntimeError),
    ],
)
def test_errors_are_also_builtin_exceptions(cls, builtin) -> None:
    err = cls("boom", context={"k": "v"})

    assert isinstance(err, ServerSetupError)
    assert isinstance(err, builtin)
    assert str(err) == "boom"


def test_to_json_error_copies_context() -> None:
    ctx = {"timeout_seconds": 5}
    err = ReadinessTimeoutError("not ready", context=ctx)
    ctx["timeout_seconds"] = 99

    assert err.to_json_error() == {
        "message": "not ready",
        "code": "ReadinessTimeoutError",
        "context": {"timeout_seconds": 5},
    }


def test_state_transition_error_context() -> None:
    err = StateTransitionError("bad", instance="i", concern="bundles", current="failed", target="installed")

    assert err.context == {"instance": "i", "concern": "bundles", "current": "failed", "target": "installed"}
