"""Minimal HTTP client for talking to the server under test."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Tuple, Union

import requests

from serversetup.core.exceptions import TransportError

RequestParams = Union[Mapping[str, Any], Sequence[Tuple[str, Optional[str]]], None]


class ClientError(TransportError):
    """Raised when a request fails or the response is not the expected one."""


class ContentMismatchError(ClientError):
    """Raised when a response body does not contain the expected content."""


@dataclass(frozen=True)
class HttpResponse:
    url: str
    status: int
    text: str

    def check_content_contains(self, expected: str) -> None:
        if expected not in self.text:
            raise ContentMismatchError(
                f"Content of {self.url} does not contain {expected!r}",
                context={"url": self.url, "expected": expected},
            )

    def check_content_regexp(self, pattern: str) -> None:
        if re.search(pattern, self.text) is None:
            raise ContentMismatchError(
                f"Content of {self.url} does not match {pattern!r}",
                context={"url": self.url, "pattern": pattern},
            )


class HttpClient:
    """HTTP client bound to a server base URL with basic authentication."""

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.username = username
        self.password = password
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        self.session.auth = (username, password)

    def url_for(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        if not path.startswith("/"):
            path = "/" + path
        return self.base_url + path

    def do_get(
        self,
        path: str,
        params: RequestParams = None,
        expected_status: int = 200,
    ) -> HttpResponse:
        return self._request("GET", path, expected_status, params=_param_list(params))

    def do_post(
        self,
        path: str,
        data: Optional[Mapping[str, Any]] = None,
        files: Optional[Mapping[str, Any]] = None,
        expected_status: int = 200,
        *,
        allow_redirects: bool = True,
    ) -> HttpResponse:
        return self._request(
            "POST",
            path,
            expected_status,
            data=data,
            files=files,
            allow_redirects=allow_redirects,
        )

    def _request(self, method: str, path: str, expected_status: int, **kwargs: Any) -> HttpResponse:
        url = self.url_for(path)
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise ClientError(f"{method} {url} failed: {exc}", context={"url": url, "method": method}) from exc

        if expected_status and resp.status_code != expected_status:
            raise ClientError(
                f"{method} {url} returned status {resp.status_code}, expected {expected_status}",
                context={"url": url, "method": method, "status": resp.status_code},
            )
        return HttpResponse(url=url, status=resp.status_code, text=resp.text)


def _param_list(params: RequestParams) -> Optional[list[Tuple[str, str]]]:
    if not params:
        return None
    items = params.items() if isinstance(params, Mapping) else params
    # requests drops None values; send bare keys as empty values.
    return [(str(k), "" if v is None else str(v)) for k, v in items]


__all__ = ["ClientError", "ContentMismatchError", "HttpClient", "HttpResponse"]
