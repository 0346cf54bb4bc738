from __future__ import annotations

import pytest

from serversetup.core.exceptions import ConfigurationError, ReadinessTimeoutError
from serversetup.core.instance.readiness import (
    ReadinessProber,
    ReadyPath,
    extract_params,
    parse_ready_paths,
)

from helpers.fakes import FakeClient, FakeClock


def _prober(state, client: FakeClient, clock: FakeClock) -> ReadinessProber:
    return ReadinessProber(state, client, username="admin", sleep=clock.sleep, clock=clock)


def test_parse_plain_path_means_any_200() -> None:
    path = ReadyPath.parse("/system/health")

    assert path.path == "/system/health"
    assert path.expected == ""
    assert path.regexp is False
    assert path.params == ()


def test_parse_regexp_only_with_literal_third_segment() -> None:
    assert ReadyPath.parse("/b:FAIL:regexp").regexp is True
    assert ReadyPath.parse("/b:FAIL:REGEXP").regexp is False
    assert ReadyPath.parse("/b:FAIL:").regexp is False
    assert ReadyPath.parse("/b:FAIL").regexp is False


def test_parse_decodes_query_into_params() -> None:
    path = ReadyPath.parse("/x?k=v%20w:OK")

    assert path.path == "/x"
    assert path.params == (("k", "v w"),)
    assert path.expected == "OK"


@pytest.mark.parametrize("spec", ["", ":OK", "  :OK", "/a:([:regexp"])
def test_parse_rejects_malformed_specs(spec: str) -> None:
    with pytest.raises(ConfigurationError):
        ReadyPath.parse(spec)


def test_parse_ready_paths_skips_malformed(caplog: pytest.LogCaptureFixture) -> None:
    parsed = parse_ready_paths(["/a:OK", ":nothing", "/b"])

    assert [p.path for p in parsed] == ["/a", "/b"]
    assert "Ignoring readiness path" in caplog.text


def test_extract_params_edge_cases() -> None:
    assert extract_params("") == []
    assert extract_params("a=1&b") == [("a", "1"), ("b", None)]
    assert extract_params("a=&b=x+y") == [("a", None), ("b", "x y")]
    assert extract_params("q=%2Fpath%3F&&n=2") == [("q", "/path?"), ("n", "2")]


def test_both_paths_succeed_on_first_round(state, clock: FakeClock) -> None:
    client = FakeClient(routes={"/a": (200, "all OK here"), "/b": (200, "xxFAILxx")})

    _prober(state, client, clock).wait_for_ready(["/a:OK", "/b:FAIL:regexp"], 10, 0, 1)

    assert state.ready
    assert [c[0] for c in client.get_calls] == ["/a", "/b"]
    assert clock.sleeps == []


def test_retries_until_content_matches(state, clock: FakeClock) -> None:
    rounds = {"n": 0}

    def health(params):
        rounds["n"] += 1
        return (200, "READY" if rounds["n"] >= 3 else "starting")

    client = FakeClient(routes={"/health": health})

    _prober(state, client, clock).wait_for_ready(["/health:READY"], 10, 2, 1)

    assert state.ready
    assert rounds["n"] == 3
    assert clock.sleeps == [2, 1, 1]


def test_query_params_are_forwarded(state, clock: FakeClock) -> None:
    client = FakeClient(routes={"/x": (200, "OK")})

    _prober(state, client, clock).wait_for_ready(["/x?k=v%20w:OK"], 5, 0, 1)

    assert client.get_calls == [("/x", [("k", "v w")])]


def test_timeout_marks_failure_and_is_sticky(state, clock: FakeClock) -> None:
    client = FakeClient(routes={"/a": (200, "OK"), "/b": (200, "nope")})
    prober = _prober(state, client, clock)

    with pytest.raises(ReadinessTimeoutError, match="Server not ready after 3 seconds, giving up") as exc_info:
        prober.wait_for_ready(["/a:OK", "/b:FAIL:regexp"], 3, 0, 1)

    assert state.ready_test_failed
    assert exc_info.value.context["failing_paths"] == ["/b:FAIL:regexp"]

    calls_before = len(client.get_calls)
    with pytest.raises(ReadinessTimeoutError, match="previous tests"):
        prober.wait_for_ready(["/a:OK"], 3, 0, 1)
    assert len(client.get_calls) == calls_before


def test_transport_errors_are_retried_and_logged_at_debug(state, clock: FakeClock, caplog) -> None:
    caplog.set_level("DEBUG", logger="serversetup.core.instance.readiness")
    client = FakeClient(routes={"/a": (503, "down")})

    with pytest.raises(ReadinessTimeoutError):
        _prober(state, client, clock).wait_for_ready(["/a"], 2, 0, 1)

    assert len(client.get_calls) == 2
    assert "Request to admin@http://localhost:4502/a failed, will retry" in caplog.text


def test_already_ready_does_not_probe(state, clock: FakeClock) -> None:
    state.mark_ready()
    client = FakeClient()

    _prober(state, client, clock).wait_for_ready(["/a:OK"], 5, 1, 1)

    assert client.get_calls == []
    assert clock.sleeps == []


def test_no_paths_is_ready_immediately(state, clock: FakeClock) -> None:
    _prober(state, FakeClient(), clock).wait_for_ready([], 5, 0, 1)

    assert state.ready


def test_zero_timeout_fails_without_probing(state, clock: FakeClock) -> None:
    client = FakeClient(routes={"/a": (200, "OK")})

    with pytest.raises(ReadinessTimeoutError):
        _prober(state, client, clock).wait_for_ready(["/a:OK"], 0, 0, 1)

    assert client.get_calls == []
    assert state.ready_test_failed
