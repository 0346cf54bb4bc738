from __future__ import annotations

import logging
import sys
from pathlib import Path

_CONFIGURED_KEY: tuple[str, str | None] | None = None
_INSTALLED_HANDLERS: list[logging.Handler] = []

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _level_from_name(name: str) -> int:
    try:
        return int(getattr(logging, name.upper()))
    except Exception:
        return logging.INFO


def configure_stdlib_logging(*, level: str = "INFO", log_path: Path | None = None) -> None:
    """Configure Python stdlib logging for command-line runs.

    Installs a stderr handler and, when `log_path` is given, a file handler.
    Idempotent per-process: if already configured with the same level and
    file, no-op.
    """
    global _CONFIGURED_KEY

    resolved = str(Path(log_path).resolve()) if log_path is not None else None
    key = (level.upper(), resolved)
    if _CONFIGURED_KEY == key and _INSTALLED_HANDLERS:
        return

    root = logging.getLogger()
    root.setLevel(_level_from_name(level))

    # Replace handlers installed by a previous call.
    for h in _INSTALLED_HANDLERS:
        root.removeHandler(h)
        try:
            h.close()
        except Exception:
            pass
    _INSTALLED_HANDLERS.clear()

    fmt = logging.Formatter(LOG_FORMAT)

    stream = logging.StreamHandler(sys.stderr)
    stream.setLevel(_level_from_name(level))
    stream.setFormatter(fmt)
    root.addHandler(stream)
    _INSTALLED_HANDLERS.append(stream)

    if resolved is not None:
        Path(resolved).parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(resolved, encoding="utf-8")
        fh.setLevel(_level_from_name(level))
        fh.setFormatter(fmt)
        root.addHandler(fh)
        _INSTALLED_HANDLERS.append(fh)

    _CONFIGURED_KEY = key


def reset_stdlib_logging_for_tests() -> None:
    """Test-only: remove the handlers installed by configure_stdlib_logging."""
    global _CONFIGURED_KEY
    root = logging.getLogger()
    for h in _INSTALLED_HANDLERS:
        root.removeHandler(h)
        try:
            h.close()
        except Exception:
            pass
    _INSTALLED_HANDLERS.clear()
    _CONFIGURED_KEY = None


__all__ = ["LOG_FORMAT", "configure_stdlib_logging", "reset_stdlib_logging_for_tests"]
