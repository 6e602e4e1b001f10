"""Type definitions for the bridge."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
import json
from pathlib import Path
from typing_extensions import Self


class EntryStatus(Enum):
    """Queue entry status. The value is the heading keyword in the queue file."""

    PENDING = "TODO"
    DONE = "DONE"


@dataclass(frozen=True)
class TaskEntry:
    """One durable record in the queue."""

    status: EntryStatus
    timestamp: datetime  # Minute resolution, as written in the heading
    message: str
    session_label: str
    line: int = 0  # Heading line in the document at read time; not persisted

    @property
    def pending(self) -> bool:
        return self.status is EntryStatus.PENDING


@dataclass(frozen=True)
class SessionLocator:
    """Where a session label points. Derived on demand, never stored."""

    display_buffer: str
    workspace_root: Path | None = None
    instance: str | None = None


# Queue read results. Call sites choose their own recovery policy.


@dataclass(frozen=True)
class Loaded:
    entries: list[TaskEntry]


@dataclass(frozen=True)
class Empty:
    pass


@dataclass(frozen=True)
class Malformed:
    error: Exception


QueueRead = Loaded | Empty | Malformed


@dataclass(frozen=True)
class Workspace:
    """A named workspace context as reported by the host."""

    name: str
    buffers: frozenset[str] = frozenset()


class Phase(Enum):
    """Notification presenter states."""

    IDLE = "idle"
    SHOWING = "showing"
    DISMISSED = "dismissed"
    ACTIONED = "actioned"
    TIMED_OUT = "timed_out"


@dataclass
class Notice:
    """A notification handed from the companion client to the host via the inbox."""

    message: str
    session_label: str | None = None
    event: str | None = None
    created: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(asdict(self), indent=2)

    @classmethod
    def from_json(cls, data: str) -> Self:
        """Deserialize from JSON string, handling missing fields gracefully."""
        return cls.from_dict(json.loads(data))

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create from dict, handling missing fields gracefully."""
        if not isinstance(data, dict):
            raise ValueError(f"notice must be a JSON object, got {type(data).__name__}")
        return cls(
            message=str(data.get("message") or ""),
            session_label=data.get("session_label") or None,
            event=data.get("event"),
            created=data.get("created") or datetime.now().isoformat(),
        )
