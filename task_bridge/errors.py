"""Error taxonomy for the bridge.

Three kinds of failure, each with its own propagation policy:

- NotFoundError: no live workspace holds the session's buffer. Shown to the
  operator as a message; they can switch and retry.
- ParseError: a persisted document (queue file, hook settings JSON) is
  malformed. Read paths recover with an empty/default structure and a warning.
- MissingDependencyError: a required executable or collaborator is absent.
  Fatal for the operation that needs it, raised straight to the caller.
"""

from pathlib import Path


class TaskBridgeError(Exception):
    """Base class for bridge errors."""


class NotFoundError(TaskBridgeError):
    """No live workspace context contains the target buffer."""

    def __init__(self, message: str, *, session_label: str | None = None):
        super().__init__(message)
        self.session_label = session_label


class ParseError(TaskBridgeError):
    """A persisted document could not be parsed."""

    def __init__(self, message: str, *, source: Path | str | None = None):
        super().__init__(message)
        self.source = source


class MissingDependencyError(TaskBridgeError):
    """A required external executable is not available."""

    def __init__(self, executable: str, message: str | None = None):
        super().__init__(message or f"Required executable not found on PATH: {executable}")
        self.executable = executable


def user_message(error: Exception) -> str:
    """Render an error for the operator's status line."""
    if isinstance(error, NotFoundError):
        return str(error)
    if isinstance(error, ParseError):
        where = f" ({error.source})" if error.source else ""
        return f"Could not read{where}: {error}"
    if isinstance(error, MissingDependencyError):
        return f"{error}; install it and retry"
    return f"{type(error).__name__}: {error}"
