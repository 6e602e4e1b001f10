"""Action tokens for clickable references in the queue file.

The queue document stores links as ``[[token:argument][text]]``. The token is
a stable name persisted in the file; the handler behind it is looked up in an
ActionRegistry when the link is followed. No code is ever stored in the file.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass

from .logging_config import get_logger

logger = get_logger(__name__)

SWITCH = "task-bridge:switch"
OPEN_WORKSPACE = "task-bridge:open-workspace"

# The argument runs to the first "][" so labels may contain ":".
_LINK_RE = re.compile(r"\[\[(?P<target>.+?)\](?:\[(?P<text>.*?)\])?\]")


@dataclass(frozen=True)
class Link:
    token: str
    argument: str
    text: str

    @property
    def target(self) -> str:
        return f"{self.token}:{self.argument}"


def render_link(token: str, argument: str, text: str | None = None) -> str:
    """Format a link for the queue file."""
    return f"[[{token}:{argument}][{text if text is not None else argument}]]"


def split_target(target: str) -> tuple[str, str] | None:
    """Split ``token:argument``. Tokens are namespaced (``ns:verb``) so the
    argument starts after the second colon."""
    parts = target.split(":", 2)
    if len(parts) != 3 or not parts[0] or not parts[1]:
        return None
    return f"{parts[0]}:{parts[1]}", parts[2]


def find_links(line: str) -> list[Link]:
    """All well-formed links in a line, in order."""
    links = []
    for match in _LINK_RE.finditer(line):
        split = split_target(match.group("target"))
        if split is None:
            continue
        token, argument = split
        text = match.group("text")
        links.append(Link(token=token, argument=argument, text=text if text is not None else argument))
    return links


class ActionRegistry:
    """Maps action tokens to handlers taking the captured argument."""

    def __init__(self):
        self._handlers: dict[str, Callable[[str], object]] = {}

    def register(self, token: str, handler: Callable[[str], object]) -> None:
        if split_target(f"{token}:") is None:
            raise ValueError(f"Action token must look like 'namespace:verb': {token!r}")
        self._handlers[token] = handler

    def unregister(self, token: str) -> None:
        self._handlers.pop(token, None)

    def __contains__(self, token: str) -> bool:
        return token in self._handlers

    @property
    def tokens(self) -> list[str]:
        return sorted(self._handlers)

    def dispatch(self, target: str) -> object:
        """Run the handler for ``token:argument``.

        Raises KeyError for unknown tokens and ValueError for malformed targets.
        """
        split = split_target(target)
        if split is None:
            raise ValueError(f"Not an action link: {target!r}")
        token, argument = split
        handler = self._handlers.get(token)
        if handler is None:
            raise KeyError(token)
        logger.debug("Dispatching %s for %s", token, argument)
        return handler(argument)
