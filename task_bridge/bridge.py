"""Entry point and operator commands.

handle_notification() is what the hook ultimately calls (via the inbox). The
go-to commands are zero-argument actions a host binds to keys; each reports
exactly one status message.
"""

from pathlib import Path

from . import actions, config
from .errors import NotFoundError, ParseError, user_message
from .logging_config import get_logger
from .presenter import DisplayHost, NotificationPresenter, Scheduler
from .queue_store import QueueStore
from .types import Notice
from .workspace import WorkspaceHost, WorkspaceNavigator

logger = get_logger(__name__)

DEFAULT_MESSAGE = "Task completed"
UNKNOWN_SESSION = "unknown"
TEST_LABEL = "*claude:~/*"


class Bridge:
    """Wires the queue, navigator and presenter to the host."""

    def __init__(
        self,
        store: QueueStore,
        presenter: NotificationPresenter,
        navigator: WorkspaceNavigator,
        display: DisplayHost,
    ):
        self.store = store
        self.presenter = presenter
        self.navigator = navigator
        self._display = display
        self.actions = actions.ActionRegistry()
        self.actions.register(actions.SWITCH, self._follow_switch)
        self.actions.register(actions.OPEN_WORKSPACE, self._follow_open_workspace)

    def handle_notification(self, message: str, session_label: str | None = None) -> None:
        """Record the event and maybe pop up. Queue write failures propagate."""
        message = message.strip() or DEFAULT_MESSAGE
        if not session_label:
            # Nothing to jump back to: keep the record, skip the popup
            self.store.append(UNKNOWN_SESSION, message)
            return
        self.presenter.present(message, session_label)

    def deliver(self, notice: Notice) -> None:
        """Inbox callback."""
        self.handle_notification(notice.message, notice.session_label)

    # --- Commands ---

    def notify_test(self) -> None:
        """Fire a sample notification."""
        self.handle_notification("Test notification from task-bridge", TEST_LABEL)
        self._display.message(f"Test notification sent for {TEST_LABEL}")

    def goto_most_recent(self) -> bool:
        """Switch to the session of the newest queued task."""
        return self._goto_most_recent(clear=False)

    def goto_most_recent_and_clear(self) -> bool:
        """Switch to the newest task's session and mark it done."""
        return self._goto_most_recent(clear=True)

    def _goto_most_recent(self, *, clear: bool) -> bool:
        label = self.store.most_recent_session_label()
        if label is None:
            self._display.message("No Claude tasks in queue")
            return False
        try:
            self.navigator.switch_to(label)
        except NotFoundError as e:
            self._display.message(user_message(e))
            return False
        if not clear:
            self._display.message(f"Switched to {label}")
            return True
        try:
            marked = self.store.mark_most_recent_done()
        except ParseError as e:
            logger.warning("Mark done failed: %s", e)
            self._display.message(f"Switched to {label}; {user_message(e)}")
            return True
        if marked:
            remaining = self.store.pending_count()
            self._display.message(f"Switched to {label}; marked done ({remaining} pending)")
        else:
            self._display.message(f"Switched to {label}")
        return True

    def follow_link(self, target: str) -> None:
        """Follow a ``[[token:label]]`` link from the queue file."""
        try:
            self.actions.dispatch(target)
        except NotFoundError as e:
            self._display.message(user_message(e))
        except (KeyError, ValueError):
            self._display.message(f"Unknown task link: {target}")

    def _follow_switch(self, label: str) -> None:
        self.navigator.switch_to(label)

    def _follow_open_workspace(self, label: str) -> Path:
        return self.navigator.open_workspace(label)

    def close(self) -> None:
        self.presenter.close()


def create_bridge(
    workspace_host: WorkspaceHost,
    display_host: DisplayHost,
    *,
    scheduler: Scheduler | None = None,
) -> Bridge:
    """Build a Bridge from the bridge config. config.init() must have been called."""
    cfg = config.get_bridge_config()
    store = QueueStore(config.queue_path())
    navigator = WorkspaceNavigator(workspace_host, agent_prefix=cfg["agent_label_prefix"])
    presenter = NotificationPresenter(
        store,
        navigator,
        display_host,
        timeout=float(cfg["notification_timeout"]),
        dismiss_keys=tuple(cfg["dismiss_keys"]),
        scheduler=scheduler,
    )
    logger.info("Bridge ready, queue at %s", store.path)
    return Bridge(store, presenter, navigator, display_host)
