"""Workspace navigation: jump from a session label back to its live workspace.

The host (editor/window manager) owns workspaces, windows and buffers. This
module only consumes them through WorkspaceHost. Buffer identity is the
session label itself.
"""

from pathlib import Path
from typing import Any, Protocol

from . import session_label
from .errors import NotFoundError
from .logging_config import get_logger
from .types import Workspace

logger = get_logger(__name__)


class WorkspaceHost(Protocol):
    """Workspace and window capabilities provided by the host."""

    def list_workspaces(self) -> list[Workspace]: ...

    def switch_to_workspace(self, name: str) -> None: ...

    def window_for_buffer(self, buffer: str) -> Any | None:
        """The window currently showing ``buffer``, if any."""
        ...

    def focus_window(self, window: Any) -> None: ...

    def display_buffer(self, buffer: str) -> Any:
        """Show ``buffer`` in a new window and return it."""
        ...

    def input_mode_active(self) -> bool:
        """Whether the host's terminal-input side mode is enabled."""
        ...

    def enter_input_mode(self, window: Any) -> None: ...

    def open_directory(self, path: Path) -> None: ...


class WorkspaceNavigator:
    """Resolves session labels to live workspaces and focuses them.

    Never creates workspaces and never touches the task queue.
    """

    def __init__(self, host: WorkspaceHost, *, agent_prefix: str = "*claude"):
        self._host = host
        self._agent_prefix = agent_prefix

    def find_workspace(self, label: str) -> Workspace | None:
        """First workspace, in host enumeration order, that holds the label's buffer.

        Ties resolve by enumeration order; buffer names are unique in practice.
        """
        for workspace in self._host.list_workspaces():
            if label in workspace.buffers:
                return workspace
        return None

    def switch_to(self, label: str) -> Workspace:
        """Switch to the workspace holding ``label`` and focus its window.

        Raises NotFoundError when no live workspace contains the buffer.
        """
        workspace = self.find_workspace(label)
        if workspace is None:
            raise NotFoundError(f"No workspace contains {label}", session_label=label)

        self._host.switch_to_workspace(workspace.name)
        window = self._host.window_for_buffer(label)
        if window is not None:
            self._host.focus_window(window)
        else:
            window = self._host.display_buffer(label)

        if session_label.is_agent_session(label, self._agent_prefix) and self._host.input_mode_active():
            self._host.enter_input_mode(window)

        logger.info("Switched to %s in workspace %s", label, workspace.name)
        return workspace

    def open_workspace(self, label: str) -> Path:
        """Open the directory a session label points at."""
        root = session_label.workspace_root(label)
        if root is None:
            raise NotFoundError(f"{label} does not name a workspace directory", session_label=label)
        root = root.expanduser()
        self._host.open_directory(root)
        logger.info("Opened workspace %s", root)
        return root
