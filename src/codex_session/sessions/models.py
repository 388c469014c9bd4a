"""Value types shared by the catalog, the CLI and the browser."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any


class SessionSource(str, Enum):
    """Where a recorded session originated."""
    CLI = "cli"
    VSCODE = "vscode"
    EXEC = "exec"
    MCP = "mcp"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "SessionSource":
        """Map a raw `source` field to a member.

        A missing field means the recorder predates the field, which only
        happened for editor sessions.
        """
        if value is None:
            return cls.VSCODE
        if isinstance(value, str):
            try:
                return cls(value.lower())
            except ValueError:
                return cls.UNKNOWN
        return cls.UNKNOWN


INTERACTIVE_SOURCES = frozenset({SessionSource.CLI, SessionSource.VSCODE})


@dataclass(frozen=True, order=True)
class SessionKey:
    """Sort and pagination key decoded from a rollout filename.

    The catalog order is descending on (timestamp, id).
    """
    timestamp: datetime
    id: uuid.UUID


@dataclass(frozen=True)
class SessionSummary:
    """One row in any listing."""
    id: str
    path: Path
    preview: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    cwd: Path | None = None
    git_branch: str | None = None
    provider: str | None = None

    @property
    def resume_hint(self) -> str:
        return f"codex resume {self.id}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "path": str(self.path),
            "preview": self.preview,
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
            "cwd": str(self.cwd) if self.cwd is not None else None,
            "git_branch": self.git_branch,
            "provider": self.provider,
        }


@dataclass(frozen=True)
class SessionDetail:
    """A summary plus the session-meta fields only shown on demand."""
    summary: SessionSummary
    instructions: str | None = None
    source: SessionSource | None = None
    git_branch: str | None = None
    meta: dict[str, Any] | None = None


@dataclass
class ListOptions:
    """Query parameters for a catalog listing.

    An explicit cwd_filter always narrows the listing. Without one,
    show_all=False matches nothing, so callers wanting everything leave
    show_all at its default.
    """
    limit: int = 20
    cursor: str | None = None
    providers: list[str] = field(default_factory=list)
    show_all: bool = True
    cwd_filter: Path | None = None

    def __post_init__(self) -> None:
        self.limit = max(1, self.limit)


@dataclass
class SessionList:
    """One page of a listing."""
    sessions: list[SessionSummary]
    next_cursor: str | None = None
    scanned_files: int = 0
    reached_scan_cap: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessions": [s.to_dict() for s in self.sessions],
            "next_cursor": self.next_cursor,
            "scanned_files": self.scanned_files,
            "reached_scan_cap": self.reached_scan_cap,
        }


def _isoformat(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")
