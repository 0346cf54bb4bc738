"""Timeout scaling shared by every wait in the server lifecycle.

Slow CI machines can stretch all configured timeouts and delays at once with
the ``sling.testing.timeout.multiplier`` property.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from serversetup.core.exceptions import ConfigurationError
from serversetup.data import defaults_section

TIMEOUT_MULTIPLIER_PROP = "sling.testing.timeout.multiplier"


def _default_multiplier() -> float:
    return float(defaults_section("timeouts").get("multiplier", 1.0))


@dataclass(frozen=True)
class TimeoutsProvider:
    multiplier: float = 1.0

    @classmethod
    def from_properties(cls, properties: Mapping[str, str]) -> "TimeoutsProvider":
        raw = properties.get(TIMEOUT_MULTIPLIER_PROP)
        if raw is None or not str(raw).strip():
            return cls(_default_multiplier())
        try:
            value = float(str(raw).strip())
        except ValueError as exc:
            raise ConfigurationError(
                f"{TIMEOUT_MULTIPLIER_PROP} must be a number, got {raw!r}",
                context={"property": TIMEOUT_MULTIPLIER_PROP, "value": raw},
            ) from exc
        if value <= 0:
            raise ConfigurationError(
                f"{TIMEOUT_MULTIPLIER_PROP} must be positive, got {raw!r}",
                context={"property": TIMEOUT_MULTIPLIER_PROP, "value": raw},
            )
        return cls(value)

    def get_timeout(self, seconds: float) -> float:
        """Return ``seconds`` scaled by the configured multiplier."""
        return float(seconds) * self.multiplier


__all__ = ["TIMEOUT_MULTIPLIER_PROP", "TimeoutsProvider"]
