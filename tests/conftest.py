"""Shared fixtures for task bridge tests."""

from datetime import datetime, timedelta
from pathlib import Path

import pytest

import task_bridge.config as config
from task_bridge.types import Workspace


def _reset_config_cache() -> None:
    config._bridge_config_cache = None
    config._bridge_config_mtime = 0.0
    config._bridge_config_file = None


@pytest.fixture
def data_dir(tmp_path):
    """Create a temporary data directory and init config."""
    d = tmp_path / "data"
    d.mkdir()
    old = config._data_dir
    _reset_config_cache()
    config.init(d)
    yield d
    config._data_dir = old
    _reset_config_cache()


class FixedClock:
    """Clock that advances one minute per call."""

    def __init__(self, start: datetime = datetime(2026, 10, 18, 14, 3)):
        self.now = start
        self.calls = 0

    def __call__(self) -> datetime:
        value = self.now + timedelta(minutes=self.calls)
        self.calls += 1
        return value


class FakeTimer:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.callback()


class FakeScheduler:
    """Records timers instead of scheduling them; tests fire them by hand."""

    def __init__(self):
        self.timers: list[FakeTimer] = []

    def __call__(self, delay, callback):
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def live(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled]


class FakeHost:
    """In-memory editor: workspaces, windows, a popup layer and a global keymap."""

    def __init__(self, workspaces: list[Workspace] | None = None):
        self.workspaces = list(workspaces or [])
        self.current_workspace: str | None = None
        self.windows: dict[str, str] = {}  # buffer -> window id
        self.focused: str | None = None
        self.input_mode = False
        self.input_windows: list[str] = []
        self.opened: list[Path] = []
        self.surfaces: dict[int, dict] = {}
        self.overrides: dict[int, tuple] = {}
        self.messages: list[str] = []
        self._next_id = 0

    def _id(self) -> int:
        self._next_id += 1
        return self._next_id

    # WorkspaceHost

    def list_workspaces(self):
        return list(self.workspaces)

    def switch_to_workspace(self, name):
        self.current_workspace = name

    def window_for_buffer(self, buffer):
        return self.windows.get(buffer)

    def focus_window(self, window):
        self.focused = next(b for b, w in self.windows.items() if w == window)

    def display_buffer(self, buffer):
        window = f"win-{self._id()}"
        self.windows[buffer] = window
        self.focused = buffer
        return window

    def input_mode_active(self):
        return self.input_mode

    def enter_input_mode(self, window):
        self.input_windows.append(window)

    def open_directory(self, path):
        self.opened.append(path)

    # DisplayHost

    def buffer_visible(self, buffer):
        return buffer in self.windows

    def focused_buffer(self):
        return self.focused

    def show_surface(self, title, body, actions):
        surface = self._id()
        self.surfaces[surface] = {"title": title, "body": body, "actions": actions}
        return surface

    def close_surface(self, surface):
        del self.surfaces[surface]

    def install_key_override(self, keys, callback):
        override = self._id()
        self.overrides[override] = (keys, callback)
        return override

    def remove_key_override(self, override):
        del self.overrides[override]

    def message(self, text):
        self.messages.append(text)

    # Test helpers

    def press(self, key):
        """Deliver a key press to the topmost global override, if any binds it."""
        for keys, callback in reversed(list(self.overrides.values())):
            if key in keys:
                callback()
                return True
        return False

    def click(self, label):
        (surface,) = self.surfaces.values()
        action = next(a for a in surface["actions"] if a.label == label)
        action.callback()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def host():
    return FakeHost(
        [
            Workspace("main", frozenset({"*scratch*"})),
            Workspace("proj", frozenset({"*claude:/home/me/proj*", "notes.org"})),
            Workspace("other", frozenset({"*claude:/home/me/other*"})),
        ]
    )
