"""HTTP and web console clients for the server under test."""
from __future__ import annotations

from .bundles import BundlesInstaller, BundleTimeoutError
from .console import BundleState, ConsoleClient
from .http import ClientError, ContentMismatchError, HttpClient, HttpResponse

__all__ = [
    "BundleState",
    "BundleTimeoutError",
    "BundlesInstaller",
    "ClientError",
    "ConsoleClient",
    "ContentMismatchError",
    "HttpClient",
    "HttpResponse",
]
