"""Durable task queue: an org-style text file, one heading per entry.

Layout of one entry (a blank line separates entries):

  * TODO Claude task completed [2026-10-18 Sun 14:03]
    Message: Finished refactoring the parser
    Buffer: [[task-bridge:switch:*claude:/home/me/proj*][*claude:/home/me/proj*]]
    Actions: [[task-bridge:switch:...][Switch to session]] [[task-bridge:open-workspace:...][Open workspace]]

Status lives in the heading keyword (TODO = pending, DONE = done). Entries are
only ever appended, flipped TODO -> DONE in place, or removed whole; nothing is
reordered and messages/timestamps are never edited.

A message is stored on its single ``Message:`` line: runs of whitespace,
newlines included, are collapsed to one space on append, so multi-line
messages read back flattened.

Writes never swallow failures. An undecodable file makes append, mark-done and
delete raise ParseError without touching it; reads report it as Malformed.

Every read-modify-write runs under the store's lock and ends with an atomic
replace of the file, so a reader never sees half an entry.
"""

import os
import re
import tempfile
import threading
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from . import actions
from .errors import ParseError
from .logging_config import get_logger
from .types import Empty, EntryStatus, Loaded, Malformed, QueueRead, TaskEntry

logger = get_logger(__name__)

TITLE = "Claude task completed"

_DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

_ENTRY_HEADING_RE = re.compile(r"^\* (?P<keyword>TODO|DONE) " + re.escape(TITLE) + r" \[(?P<stamp>[^\]]*)\]\s*$")
_STAMP_RE = re.compile(r"^(?P<date>\d{4}-\d{2}-\d{2}) [A-Za-z]{2,3}\.? (?P<time>\d{2}:\d{2})$")
# Any top-level heading ends the previous block.
_BLOCK_START_RE = re.compile(r"^\* ")


def format_timestamp(when: datetime) -> str:
    """[YYYY-MM-DD Day HH:MM] with fixed English day names."""
    return f"[{when:%Y-%m-%d} {_DAY_NAMES[when.weekday()]} {when:%H:%M}]"


def parse_timestamp(stamp: str) -> datetime:
    match = _STAMP_RE.match(stamp.strip())
    if match is None:
        raise ValueError(f"Bad timestamp: {stamp!r}")
    return datetime.strptime(f"{match['date']} {match['time']}", "%Y-%m-%d %H:%M")


def format_entry(session_label: str, message: str, when: datetime, status: EntryStatus = EntryStatus.PENDING) -> str:
    """Render one entry block, including its trailing blank line."""
    flat = " ".join(message.split())
    switch = actions.render_link(actions.SWITCH, session_label)
    return (
        f"* {status.value} {TITLE} {format_timestamp(when)}\n"
        f"  Message: {flat}\n"
        f"  Buffer: {switch}\n"
        f"  Actions: {actions.render_link(actions.SWITCH, session_label, 'Switch to session')}"
        f" {actions.render_link(actions.OPEN_WORKSPACE, session_label, 'Open workspace')}\n"
        "\n"
    )


def parse_document(text: str, *, source: Path | None = None) -> list[TaskEntry]:
    """Parse queue text into entries. Raises ParseError on structural corruption."""
    lines = text.splitlines()
    entries: list[TaskEntry] = []
    current: dict | None = None
    seen_heading = False

    def finish():
        if current is not None:
            entries.append(TaskEntry(**current))

    for lineno, line in enumerate(lines):
        if _BLOCK_START_RE.match(line):
            finish()
            seen_heading = True
            current = None
            match = _ENTRY_HEADING_RE.match(line)
            if match is None:
                continue  # Someone else's heading; kept, not an entry
            try:
                stamp = parse_timestamp(match["stamp"])
            except ValueError as exc:
                raise ParseError(f"line {lineno + 1}: {exc}", source=source) from exc
            current = {
                "status": EntryStatus(match["keyword"]),
                "timestamp": stamp,
                "message": "",
                "session_label": "",
                "line": lineno,
            }
            continue

        stripped = line.strip()
        if current is None:
            if not seen_heading and stripped and not stripped.startswith("#"):
                raise ParseError(f"line {lineno + 1}: text before first entry", source=source)
            continue
        if stripped.startswith("Message:"):
            current["message"] = stripped[len("Message:") :].strip()
        elif stripped.startswith("Buffer:"):
            current["session_label"] = _buffer_label(stripped)

    finish()
    return entries


def _buffer_label(line: str) -> str:
    """Session label from a ``Buffer:`` line (the link argument, else the bare text)."""
    for link in actions.find_links(line):
        if link.token == actions.SWITCH:
            return link.argument
    return line[len("Buffer:") :].strip()


class QueueStore:
    """Append-and-rewrite text store of task entries."""

    def __init__(self, path: Path, *, clock: Callable[[], datetime] | None = None):
        self._path = Path(path)
        self._clock = clock or datetime.now
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    # --- Raw I/O ---

    def _read_raw(self) -> str | None:
        """File contents, or None if it doesn't exist. Raises OSError / UnicodeDecodeError."""
        try:
            return self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def _read_lines_for_update(self) -> list[str] | None:
        """Lines (with endings) for an in-place edit; None when there's nothing to edit.

        Raises ParseError if the file can't be decoded; it is left untouched.
        """
        try:
            text = self._read_raw()
        except UnicodeDecodeError as e:
            raise ParseError(f"cannot edit undecodable queue: {e}", source=self._path) from e
        if not text:
            return None
        return text.splitlines(keepends=True)

    def _write_raw(self, text: str) -> None:
        """Write-then-rename so readers see the old or the new document, never a mix."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    # --- Reads ---

    def read(self) -> QueueRead:
        """Read the whole queue. Never raises; the caller picks a recovery policy."""
        try:
            text = self._read_raw()
        except (OSError, UnicodeDecodeError) as e:
            return Malformed(ParseError(str(e), source=self._path))
        if text is None or not text.strip():
            return Empty()
        try:
            entries = parse_document(text, source=self._path)
        except ParseError as e:
            return Malformed(e)
        return Loaded(entries) if entries else Empty()

    def entries(self) -> list[TaskEntry]:
        """All entries in append order; an unreadable queue reads as empty."""
        result = self.read()
        if isinstance(result, Loaded):
            return result.entries
        if isinstance(result, Malformed):
            logger.warning("Queue file %s is malformed, treating as empty: %s", self._path, result.error)
        return []

    def most_recent_session_label(self) -> str | None:
        """Session label of the newest entry that has one."""
        for entry in reversed(self.entries()):
            if entry.session_label:
                return entry.session_label
        return None

    def pending_count(self) -> int:
        return sum(1 for entry in self.entries() if entry.pending)

    # --- Writes ---

    def append(self, session_label: str, message: str) -> int:
        """Append a pending entry and return its id (ordinal in append order)."""
        with self._lock:
            try:
                existing = self._read_raw() or ""
            except UnicodeDecodeError as e:
                raise ParseError(f"cannot append to undecodable queue: {e}", source=self._path) from e

            if existing and not existing.endswith("\n"):
                existing += "\n"
            if existing.strip() and not existing.endswith("\n\n"):
                existing += "\n"

            entry_id = sum(1 for line in existing.splitlines() if _ENTRY_HEADING_RE.match(line))
            self._write_raw(existing + format_entry(session_label, message, self._clock()))

        logger.info("Queued task #%d for %s", entry_id, session_label or "(no session)")
        return entry_id

    def mark_most_recent_done(self) -> bool:
        """Flip the newest TODO heading to DONE. Only the heading line changes.

        False when nothing is pending. Raises ParseError on an undecodable queue.
        """
        with self._lock:
            lines = self._read_lines_for_update()
            if lines is None:
                return False
            for i in range(len(lines) - 1, -1, -1):
                match = _ENTRY_HEADING_RE.match(lines[i].rstrip("\r\n"))
                if match and match["keyword"] == EntryStatus.PENDING.value:
                    lines[i] = "* DONE " + lines[i][len("* TODO ") :]
                    self._write_raw("".join(lines))
                    logger.info("Marked task at line %d done", i + 1)
                    return True
        return False

    def delete_entry(self, entry_id: int) -> bool:
        """Remove entry number ``entry_id`` (append order) entirely."""
        with self._lock:
            lines = self._read_lines_for_update()
            if lines is None or entry_id < 0:
                return False
            headings = [i for i, line in enumerate(lines) if _ENTRY_HEADING_RE.match(line.rstrip("\r\n"))]
            if entry_id >= len(headings):
                return False
            return self._delete_block(lines, headings[entry_id])

    def delete_entry_at(self, line: int) -> bool:
        """Remove the entry whose block contains ``line`` (0-based), i.e. the one under the cursor."""
        with self._lock:
            lines = self._read_lines_for_update()
            if lines is None or not 0 <= line < len(lines):
                return False
            for i in range(line, -1, -1):
                if _BLOCK_START_RE.match(lines[i]):
                    if not _ENTRY_HEADING_RE.match(lines[i].rstrip("\r\n")):
                        return False
                    return self._delete_block(lines, i)
        return False

    def _delete_block(self, lines: list[str], start: int) -> bool:
        end = start + 1
        while end < len(lines) and not _BLOCK_START_RE.match(lines[end]):
            end += 1
        del lines[start:end]
        text = "".join(lines)
        self._write_raw(text if text.strip() else "")
        logger.info("Deleted task block at lines %d-%d", start + 1, end)
        return True
