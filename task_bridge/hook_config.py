"""Hook settings: install the bridge's client command into the agent's hook config.

The settings file is JSON with a "hooks" object of named trigger lists:

  {"hooks": {"Stop": [{"matcher": "", "hooks": [{"type": "command", "command": "..."}]}]}}

Installing replaces the whole "hooks" section and leaves every other
top-level key as it was.
"""

import json
import shlex
import shutil
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from .errors import MissingDependencyError, ParseError
from .logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_EVENTS = ("Notification", "Stop")


def parse_document(text: str, *, source: Path | None = None) -> dict[str, Any]:
    """Parse a settings document. Raises ParseError if it isn't a JSON object."""
    try:
        doc = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"invalid JSON: {e}", source=source) from e
    if not isinstance(doc, dict):
        raise ParseError(f"expected a JSON object, got {type(doc).__name__}", source=source)
    return doc


def merge(existing: dict[str, Any], fragment: dict[str, Any]) -> dict[str, Any]:
    """Shallow merge: ``fragment["hooks"]`` replaces ``existing["hooks"]`` wholesale.

    All other top-level keys of ``existing`` pass through. Neither input is modified.
    """
    merged = {key: value for key, value in existing.items() if key != "hooks"}
    merged["hooks"] = fragment.get("hooks", {})
    return merged


def build_hook_command(client: str, env_var: str, event: str) -> str:
    """Shell command the agent runs on ``event``: forward the session label to the client."""
    return f'{shlex.quote(client)} send --event {shlex.quote(event)} --session "${{{env_var}:-}}" --hook-input'


def build_hooks_fragment(
    client: str,
    env_var: str,
    events: Iterable[str] = DEFAULT_EVENTS,
) -> dict[str, Any]:
    """The "hooks" section wiring every event to the client."""
    return {
        "hooks": {
            event: [
                {
                    "matcher": "",
                    "hooks": [{"type": "command", "command": build_hook_command(client, env_var, event)}],
                }
            ]
            for event in events
        }
    }


def resolve_client(client: str) -> str:
    """Absolute path of the companion client. Raises MissingDependencyError if absent."""
    found = shutil.which(client)
    if found is None:
        raise MissingDependencyError(client)
    return found


def load_settings(path: Path) -> dict[str, Any]:
    """Read the settings file; missing -> {}. Raises ParseError if malformed."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    return parse_document(text, source=path)


def install_hooks(
    settings_path: Path,
    *,
    client: str = "task-bridge",
    env_var: str = "CLAUDE_BUFFER_NAME",
    events: Iterable[str] = DEFAULT_EVENTS,
) -> dict[str, Any]:
    """Write the bridge's hooks into ``settings_path`` and return the merged document.

    A missing client is fatal. A malformed settings file is replaced outright
    (with a warning) rather than aborting setup.
    """
    client_path = resolve_client(client)
    settings_path = Path(settings_path).expanduser()

    try:
        existing = load_settings(settings_path)
    except ParseError as e:
        logger.warning("Ignoring malformed settings %s, overwriting: %s", settings_path, e)
        existing = {}

    merged = merge(existing, build_hooks_fragment(client_path, env_var, events))
    settings_path.parent.mkdir(parents=True, exist_ok=True)
    settings_path.write_text(json.dumps(merged, indent=2) + "\n", encoding="utf-8")
    logger.info("Installed %s hooks into %s", ", ".join(merged["hooks"]), settings_path)
    return merged
