"""
Error types and error logging for notetagger.

Logs full stack traces for debugging while showing clean messages to users.
"""

import os
import traceback
from datetime import datetime, timezone
from pathlib import Path


class NotetaggerError(Exception):
    """Base class for notetagger errors."""


class ConfigurationError(NotetaggerError):
    """Configuration is incomplete or invalid; no operation was attempted."""


class TransportError(NotetaggerError):
    """The model service was unreachable or returned an unusable response."""


def _error_log_path() -> Path:
    """Resolve error log path, respecting NOTETAGGER_HOME."""
    home = os.environ.get("NOTETAGGER_HOME")
    if home:
        return Path(home) / "notetagger-errors.log"
    return Path.home() / ".notetagger" / "notetagger-errors.log"


def log_exception(exc: Exception, context: str = "") -> Path:
    """
    Log exception with full traceback to file.

    Args:
        exc: The exception that occurred
        context: Optional context string (e.g., command name)

    Returns:
        Path to the error log file
    """
    log_path = _error_log_path()
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a") as f:
            f.write(f"\n{'='*60}\n")
            f.write(f"[{timestamp}]")
            if context:
                f.write(f" {context}")
            f.write("\n")
            f.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    except OSError:
        pass  # Can't write error log, don't crash over it
    return log_path
