"""Notification presenter: at most one dismissible, self-expiring popup.

States: IDLE -> SHOWING -> {DISMISSED, ACTIONED, TIMED_OUT} -> IDLE.

While SHOWING, the presenter owns three resources: the popup surface, a
process-wide key override (dismiss keys work whatever has focus) and the
expiry timer. They are acquired together and released together; every state
change goes through _transition() so no exit path can leave one behind.

A present() while SHOWING supersedes the current popup: it is torn down
completely before the new one is shown.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from . import session_label
from .errors import NotFoundError, ParseError, user_message
from .logging_config import get_logger
from .queue_store import TITLE, QueueStore
from .types import Phase
from .workspace import WorkspaceNavigator

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 10.0  # seconds
DEFAULT_DISMISS_KEYS = ("Escape", "q")


@dataclass(frozen=True)
class SurfaceAction:
    """A clickable button on the popup."""

    label: str
    callback: Callable[[], None]


class DisplayHost(Protocol):
    """Display capabilities provided by the host."""

    def buffer_visible(self, buffer: str) -> bool: ...

    def focused_buffer(self) -> str | None: ...

    def show_surface(self, title: str, body: str, actions: list[SurfaceAction]) -> Any:
        """Show a read-only popup and return a handle for close_surface()."""
        ...

    def close_surface(self, surface: Any) -> None: ...

    def install_key_override(self, keys: tuple[str, ...], callback: Callable[[], None]) -> Any:
        """Bind ``keys`` globally, above every other keymap. Returns a handle."""
        ...

    def remove_key_override(self, override: Any) -> None: ...

    def message(self, text: str) -> None:
        """One-line status message to the operator."""
        ...


class Cancellable(Protocol):
    def cancel(self) -> None: ...


Scheduler = Callable[[float, Callable[[], None]], Cancellable]


def loop_scheduler(delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
    """Schedule on the running asyncio loop."""
    return asyncio.get_running_loop().call_later(delay, callback)


@dataclass
class NotificationState:
    """The single active-notification slot."""

    phase: Phase = Phase.IDLE
    session_label: str | None = None
    surface: Any = None
    override: Any = None
    timer: Cancellable | None = None
    generation: int = 0  # Bumped per popup; stale callbacks compare against it


class NotificationPresenter:
    """Owns the active-notification slot and the dismiss-key override."""

    def __init__(
        self,
        store: QueueStore,
        navigator: WorkspaceNavigator,
        display: DisplayHost,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        dismiss_keys: tuple[str, ...] = DEFAULT_DISMISS_KEYS,
        scheduler: Scheduler | None = None,
    ) -> None:
        self._store = store
        self._navigator = navigator
        self._display = display
        self._timeout = timeout
        self._dismiss_keys = tuple(dismiss_keys)
        self._scheduler = scheduler or loop_scheduler
        self._state = NotificationState()
        self._last_outcome: Phase | None = None

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def active(self) -> bool:
        return self._state.phase is Phase.SHOWING

    @property
    def session_label(self) -> str | None:
        return self._state.session_label

    @property
    def last_outcome(self) -> Phase | None:
        """How the previous popup ended (DISMISSED, ACTIONED or TIMED_OUT)."""
        return self._last_outcome

    # --- Public triggers ---

    def present(self, message: str, label: str) -> bool:
        """Queue the event, then pop up unless the operator is already looking at it.

        Returns True if a popup is now showing for ``label``.
        """
        self._store.append(label, message)

        if self._display.buffer_visible(label) or self._display.focused_buffer() == label:
            logger.debug("Popup suppressed, %s already on screen", label)
            return False

        self._transition(Phase.SHOWING, message=message, label=label)
        return True

    def dismiss(self) -> bool:
        """Close the popup (dismiss key or explicit call). False if nothing was showing."""
        if not self.active:
            return False
        self._transition(Phase.DISMISSED)
        return True

    def close(self) -> None:
        """Tear down on host shutdown."""
        self.dismiss()

    # --- Internals ---

    def _actions_for(self, label: str, generation: int) -> list[SurfaceAction]:
        actions = [
            SurfaceAction(
                "Switch to session",
                lambda: self._run_action(generation, lambda: self._navigator.switch_to(label)),
            )
        ]
        if session_label.workspace_root(label) is not None:
            actions.append(
                SurfaceAction(
                    "Open workspace",
                    lambda: self._run_action(generation, lambda: self._navigator.open_workspace(label)),
                )
            )
            actions.append(
                SurfaceAction(
                    "Open workspace + mark done",
                    lambda: self._run_action(generation, lambda: self._open_and_mark_done(label)),
                )
            )
        return actions

    def _open_and_mark_done(self, label: str) -> None:
        self._navigator.open_workspace(label)
        if self._store.mark_most_recent_done():
            self._display.message("Marked task done")

    def _run_action(self, generation: int, action: Callable[[], object]) -> None:
        if generation != self._state.generation or not self.active:
            return
        try:
            action()
        except (NotFoundError, ParseError) as e:
            self._display.message(user_message(e))
        finally:
            if generation == self._state.generation and self.active:
                self._transition(Phase.ACTIONED)

    def _expire(self, generation: int) -> None:
        if generation == self._state.generation and self.active:
            logger.info("Notification for %s timed out", self._state.session_label)
            self._transition(Phase.TIMED_OUT)

    def _transition(self, target: Phase, *, message: str | None = None, label: str | None = None) -> None:
        """The only place the slot, surface, override and timer change."""
        if self._state.phase is Phase.SHOWING:
            self._teardown(Phase.DISMISSED if target is Phase.SHOWING else target)
        if target is Phase.SHOWING:
            self._show(message or "", label or "")

    def _show(self, message: str, label: str) -> None:
        generation = self._state.generation + 1
        surface = override = None
        try:
            surface = self._display.show_surface(
                TITLE,
                f"{message}\n\n{label}",
                self._actions_for(label, generation),
            )
            override = self._display.install_key_override(self._dismiss_keys, self.dismiss)
            timer = self._scheduler(self._timeout, lambda: self._expire(generation))
        except BaseException:
            # Roll back whatever was acquired; the slot stays IDLE
            if override is not None:
                self._display.remove_key_override(override)
            if surface is not None:
                self._display.close_surface(surface)
            self._state = NotificationState(generation=generation)
            raise

        self._state = NotificationState(
            phase=Phase.SHOWING,
            session_label=label,
            surface=surface,
            override=override,
            timer=timer,
            generation=generation,
        )
        logger.info("Showing notification for %s", label)

    def _teardown(self, outcome: Phase) -> None:
        """Release all three resources, reset the slot, then re-raise the first failure."""
        state = self._state
        errors: list[BaseException] = []
        for release in (
            lambda: state.timer.cancel() if state.timer is not None else None,
            lambda: self._display.remove_key_override(state.override) if state.override is not None else None,
            lambda: self._display.close_surface(state.surface) if state.surface is not None else None,
        ):
            try:
                release()
            except Exception as e:
                errors.append(e)

        self._state = NotificationState(generation=state.generation)
        self._last_outcome = outcome
        logger.info("Notification for %s closed (%s)", state.session_label, outcome.value)
        if errors:
            raise errors[0]
