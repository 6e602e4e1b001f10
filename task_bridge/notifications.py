"""Client side of the inbox: drop a notice file for the host process to pick up."""

import hashlib
import json
import os
import tempfile
from datetime import datetime
from pathlib import Path

from .config import data_dir, inbox_dir
from .logging_config import get_logger
from .types import Notice

logger = get_logger(__name__)

DEDUPE_SECONDS = 2.0  # Notification and Stop often fire back to back for one pause


def _dedupe_key(notice: Notice) -> str:
    return hashlib.md5(f"{notice.session_label}\0{notice.message}".encode()).hexdigest()[:8]


def _is_duplicate(notice: Notice, now: datetime, window: float) -> bool:
    """Same label + message within ``window`` seconds of the last notice."""
    if window <= 0:
        return False

    state_file = data_dir() / "last_notice.json"
    state: dict = {"last_notify": None, "key": None}
    if state_file.exists():
        try:
            state = json.loads(state_file.read_text())
        except (json.JSONDecodeError, OSError):
            pass

    key = _dedupe_key(notice)
    duplicate = False
    last_notify = state.get("last_notify")
    if state.get("key") == key and isinstance(last_notify, str):
        try:
            last = datetime.fromisoformat(last_notify)
            duplicate = (now - last).total_seconds() < window
        except (ValueError, TypeError):
            pass

    state_file.parent.mkdir(parents=True, exist_ok=True)
    state_file.write_text(json.dumps({"last_notify": now.isoformat(), "key": key}))
    return duplicate


def write_notice(
    message: str,
    session_label: str | None = None,
    event: str | None = None,
    *,
    dedupe_seconds: float = DEDUPE_SECONDS,
) -> Path | None:
    """Write a notice into the inbox. Returns its path, or None if suppressed as a duplicate."""
    now = datetime.now()
    notice = Notice(message=message, session_label=session_label, event=event, created=now.isoformat())

    if _is_duplicate(notice, now, dedupe_seconds):
        logger.debug("Notice suppressed (duplicate within %.1fs)", dedupe_seconds)
        return None

    inbox = inbox_dir()
    inbox.mkdir(parents=True, exist_ok=True)
    # Written under a .tmp name and renamed so the watcher never reads a partial file
    stem = f"{now:%Y%m%d-%H%M%S-%f}-{os.getpid()}"
    fd, tmp_name = tempfile.mkstemp(prefix=f".{stem}.", suffix=".tmp", dir=inbox)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(notice.to_json())
    path = inbox / f"{stem}.json"
    os.replace(tmp_name, path)
    logger.info("Notice written: %s", path.name)
    return path
