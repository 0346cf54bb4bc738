from __future__ import annotations

from typing import Any, Dict, Mapping


class ServerSetupError(Exception):
    """Base exception for server setup failures."""

    context: Dict[str, Any]

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        if context is not None:
            # Store a shallow copy to avoid accidental mutation.
            self.context = dict(context)
        else:
            self.context = {}

    def to_json_error(self) -> Dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {
            "message": str(self),
            "code": self.__class__.__name__,
            "context": self.context,
        }


class ConfigurationError(ServerSetupError, ValueError):
    """Raised for malformed settings such as an unparseable readiness path."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        ServerSetupError.__init__(self, message, context=context)
        ValueError.__init__(self, message)


class StartupConflictError(ServerSetupError, RuntimeError):
    """Raised when two orchestrators both believe they started the server."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        ServerSetupError.__init__(self, message, context=context)
        RuntimeError.__init__(self, message)


class ReadinessTimeoutError(ServerSetupError, TimeoutError):
    """Raised when the server did not become ready, now or in an earlier check."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        ServerSetupError.__init__(self, message, context=context)
        TimeoutError.__init__(self, message)


class InstallationFailureError(ServerSetupError, RuntimeError):
    """Raised when additional bundles could not be installed and started."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        ServerSetupError.__init__(self, message, context=context)
        RuntimeError.__init__(self, message)


class TransportError(ServerSetupError, ConnectionError):
    """Raised when a request to the server fails or returns unexpected content."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        ServerSetupError.__init__(self, message, context=context)
        ConnectionError.__init__(self, message)


class LauncherError(ServerSetupError, RuntimeError):
    """Raised when the server process cannot be configured, started or stopped."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        ServerSetupError.__init__(self, message, context=context)
        RuntimeError.__init__(self, message)


class StateTransitionError(ServerSetupError, RuntimeError):
    """Raised on an illegal lifecycle transition of an instance state."""

    def __init__(
        self,
        message: str,
        *,
        instance: str | None = None,
        concern: str | None = None,
        current: str | None = None,
        target: str | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        ctx = dict(context or {})
        if instance:
            ctx["instance"] = instance
        if concern:
            ctx["concern"] = concern
        if current:
            ctx["current"] = current
        if target:
            ctx["target"] = target
        ServerSetupError.__init__(self, message, context=ctx)
        RuntimeError.__init__(self, message)


__all__ = [
    "ServerSetupError",
    "ConfigurationError",
    "StartupConflictError",
    "ReadinessTimeoutError",
    "InstallationFailureError",
    "TransportError",
    "LauncherError",
    "StateTransitionError",
]
