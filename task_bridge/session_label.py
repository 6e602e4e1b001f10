"""Session label parsing.

A session label names one live agent session and encodes the directory it
runs in. Grammar:

    label     := "*" tag ":" path [ ":" instance ] "*"
    tag       := one or more chars, none of "*", ":" or whitespace
    path      := "/" or "~" followed by chars other than ":" and "*"
    instance  := one or more chars other than "*"

Examples:
    *claude:/home/me/proj*          -> root /home/me/proj
    *claude:/home/me/proj:tests*    -> root /home/me/proj, instance "tests"
    *scratch*                       -> no match
"""

import re
from pathlib import Path

from .types import SessionLocator

_LABEL_RE = re.compile(
    r"""
    ^\*
    (?P<tag>[^*:\s]+)
    :
    (?P<path>[/~][^:*]*)
    (?::(?P<instance>[^*]+))?
    \*$
    """,
    re.VERBOSE,
)


def parse(label: object) -> SessionLocator | None:
    """Decompose a session label. Returns None when it doesn't follow the convention."""
    if not isinstance(label, str):
        return None
    match = _LABEL_RE.match(label)
    if match is None:
        return None
    path = match.group("path")
    if len(path) > 1:
        path = path.rstrip("/") or "/"
    return SessionLocator(
        display_buffer=label,
        workspace_root=Path(path),
        instance=match.group("instance"),
    )


def workspace_root(label: object) -> Path | None:
    """Shortcut for parse(label).workspace_root."""
    locator = parse(label)
    return locator.workspace_root if locator else None


def is_agent_session(label: str, prefix: str) -> bool:
    """Whether a buffer label belongs to an agent session (fixed prefix match)."""
    return bool(prefix) and label.startswith(prefix)
