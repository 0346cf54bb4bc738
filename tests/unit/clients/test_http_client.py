from __future__ import annotations

from typing import Any, Dict, List

import pytest
import requests

from serversetup.core.clients.http import ClientError, ContentMismatchError, HttpClient, HttpResponse
from serversetup.core.exceptions import TransportError


class StubResponse:
    def __init__(self, status_code: int, text: str = "") -> None:
        self.status_code = status_code
        self.text = text


class StubSession:
    def __init__(self, response: Any) -> None:
        self.response = response
        self.auth: Any = None
        self.requests: List[Dict[str, Any]] = []

    def request(self, method: str, url: str, **kwargs: Any) -> StubResponse:
        self.requests.append({"method": method, "url": url, **kwargs})
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


def test_get_sends_params_and_basic_auth() -> None:
    session = StubSession(StubResponse(200, "hello"))
    client = HttpClient("http://h:1/", "user", "pw", session=session, timeout=3)

    resp = client.do_get("/x", [("k", "v w"), ("flag", None)])

    assert session.auth == ("user", "pw")
    assert resp == HttpResponse(url="http://h:1/x", status=200, text="hello")
    sent = session.requests[0]
    assert sent["method"] == "GET"
    assert sent["params"] == [("k", "v w"), ("flag", "")]
    assert sent["timeout"] == 3


def test_url_for_adds_leading_slash_and_keeps_absolute_urls() -> None:
    client = HttpClient("http://h:1", "u", "p", session=StubSession(None))

    assert client.url_for("a/b") == "http://h:1/a/b"
    assert client.url_for("https://elsewhere/x") == "https://elsewhere/x"


def test_unexpected_status_is_a_client_error() -> None:
    client = HttpClient("http://h:1", "u", "p", session=StubSession(StubResponse(503, "busy")))

    with pytest.raises(ClientError, match="returned status 503, expected 200") as exc_info:
        client.do_get("/x")
    assert exc_info.value.context["status"] == 503
    assert isinstance(exc_info.value, TransportError)


def test_zero_expected_status_accepts_anything() -> None:
    client = HttpClient("http://h:1", "u", "p", session=StubSession(StubResponse(404)))

    assert client.do_get("/x", expected_status=0).status == 404


def test_transport_failures_are_wrapped() -> None:
    session = StubSession(requests.ConnectionError("refused"))
    client = HttpClient("http://h:1", "u", "p", session=session)

    with pytest.raises(ClientError, match="GET http://h:1/x failed: refused"):
        client.do_get("/x")


def test_post_passes_form_and_redirect_flag() -> None:
    session = StubSession(StubResponse(302))
    client = HttpClient("http://h:1", "u", "p", session=session)

    client.do_post("/form", data={"a": "1"}, expected_status=302, allow_redirects=False)

    sent = session.requests[0]
    assert sent["method"] == "POST"
    assert sent["data"] == {"a": "1"}
    assert sent["allow_redirects"] is False


def test_content_checks() -> None:
    resp = HttpResponse(url="http://h/x", status=200, text="Server is READY now")

    resp.check_content_contains("READY")
    resp.check_content_contains("")
    resp.check_content_regexp(r"READY\s+now")
    with pytest.raises(ContentMismatchError, match="does not contain"):
        resp.check_content_contains("DOWN")
    with pytest.raises(ContentMismatchError, match="does not match"):
        resp.check_content_regexp(r"^READY")
