"""Head-of-file summaries for rollout logs.

Rollout files are append-only JSONL. Each line is an envelope::

    {"timestamp": "2025-09-30T10:15:00.000Z", "type": "<kind>", "payload": {...}}

Only three kinds matter for cataloging:

- session_meta: id, cwd, source, model_provider, instructions, git
- response_item: conversation items; messages carry role + content segments
- event_msg with payload type "user_message": proof a human typed something

A file is a listable session only when its head window shows both a
session_meta record and a user_message event, and its source is one of
the interactive frontends. Everything else (exec runs, MCP calls,
half-written files) stays out of listings.
"""

import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator

from codex_session.sessions.cursor import parse_uuid
from codex_session.sessions.models import (
    INTERACTIVE_SOURCES,
    SessionSource,
    SessionSummary,
)

DEFAULT_HEAD_RECORD_LIMIT = 10

SESSION_META = "session_meta"
RESPONSE_ITEM = "response_item"
EVENT_MSG = "event_msg"

# A user message opening with one of these is session bootstrap, not intent
SESSION_PREFIXES = ("<environment_context>", "<user_instructions>")

_FRACTION_RE = re.compile(r"\.(\d+)")


@dataclass
class HeadSummary:
    """What the first few records of a rollout file revealed."""
    head: list[dict[str, Any]] = field(default_factory=list)
    meta: dict[str, Any] | None = None
    source: SessionSource | None = None
    model_provider: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    saw_session_meta: bool = False
    saw_user_event: bool = False


def iter_records(path: Path) -> Iterator[dict[str, Any]]:
    """Yield parsed envelopes, skipping blank and malformed lines.

    Raises:
        OSError: If the file can't be opened.
    """
    with open(path, encoding="utf-8", errors="replace") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError:
                continue  # Truncated trailing write or foreign line
            if isinstance(record, dict) and isinstance(record.get("payload"), dict):
                yield record


def parse_session_meta(payload: dict[str, Any]) -> dict[str, Any] | None:
    """Return the payload when it is a usable session_meta, else None."""
    raw_id = payload.get("id")
    if not isinstance(raw_id, str) or parse_uuid(raw_id) is None:
        return None
    return payload


def read_head(path: Path, head_limit: int = DEFAULT_HEAD_RECORD_LIMIT) -> HeadSummary:
    """Read at most head_limit records from the top of a rollout file.

    Reading stops early once both a session_meta record and a user_message
    event have been seen. Events are flags only and don't occupy head slots.

    Args:
        path: Rollout file.
        head_limit: Maximum number of meta/response records to keep.

    Returns:
        HeadSummary with the kept records and derived flags.
    """
    summary = HeadSummary()

    for record in iter_records(path):
        kind = record.get("type")
        payload = record["payload"]
        timestamp = record.get("timestamp")
        if not isinstance(timestamp, str):
            timestamp = None

        if kind == SESSION_META:
            meta = parse_session_meta(payload)
            if meta is None:
                continue
            if summary.meta is None:
                summary.meta = meta
                summary.source = SessionSource.parse(meta.get("source"))
                summary.model_provider = meta.get("model_provider")
            summary.saw_session_meta = True
            summary.head.append({"type": SESSION_META, "payload": meta})
            _note_timestamps(summary, timestamp, meta.get("updated_at"))
        elif kind == RESPONSE_ITEM:
            summary.head.append({"type": RESPONSE_ITEM, "payload": payload})
            _note_timestamps(summary, timestamp, None)
        elif kind == EVENT_MSG and payload.get("type") == "user_message":
            summary.saw_user_event = True

        if len(summary.head) >= head_limit or (summary.saw_session_meta and summary.saw_user_event):
            break

    return summary


def _note_timestamps(summary: HeadSummary, timestamp: str | None, explicit_updated: Any) -> None:
    if timestamp is not None and summary.created_at is None:
        summary.created_at = timestamp
    if isinstance(explicit_updated, str):
        summary.updated_at = explicit_updated


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an RFC 3339 timestamp into an aware UTC datetime."""
    if not value:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    # fromisoformat on older interpreters wants exactly 6 fractional digits
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return None
    return parsed.astimezone(timezone.utc)


def file_modified_time(path: Path) -> datetime | None:
    try:
        return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
    except OSError:
        return None


def is_session_prefix(text: str) -> bool:
    lowered = text.lstrip().lower()
    return lowered.startswith(SESSION_PREFIXES)


def looks_like_instructions(text: str) -> bool:
    return text.startswith("# AGENTS") or "<INSTRUCTIONS>" in text


def preview_from_message(payload: dict[str, Any]) -> str | None:
    """Build a one-line preview from a user message, if it has one."""
    if payload.get("type") != "message" or payload.get("role") != "user":
        return None
    content = payload.get("content")
    if not isinstance(content, list):
        return None

    pieces: list[str] = []
    for segment in content:
        if not isinstance(segment, dict) or segment.get("type") != "input_text":
            continue
        text = segment.get("text")
        if not isinstance(text, str):
            continue
        if is_session_prefix(text):
            return None
        trimmed = text.strip()
        if not trimmed or looks_like_instructions(trimmed):
            continue
        pieces.append(trimmed)

    return " ".join(pieces) if pieces else None


def preview_from_head(head: list[dict[str, Any]]) -> str | None:
    """Preview from the first user message in the head that has real text.

    Bootstrap messages (environment context, injected user instructions)
    are passed over whole.
    """
    for record in head:
        if record["type"] != RESPONSE_ITEM:
            continue
        preview = preview_from_message(record["payload"])
        if preview is not None:
            return preview
    return None


def _optional_str(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def summarize_head(path: Path, head: HeadSummary) -> SessionSummary | None:
    """Apply the interactivity gate and build the listing row."""
    if not head.saw_session_meta or not head.saw_user_event or head.meta is None:
        return None
    if head.source not in INTERACTIVE_SOURCES:
        return None

    meta = head.meta
    git = meta.get("git") if isinstance(meta.get("git"), dict) else {}
    cwd = _optional_str(meta.get("cwd"))

    created_at = parse_timestamp(head.created_at)
    updated_at = (
        parse_timestamp(head.updated_at)
        or file_modified_time(path)
        or created_at
    )

    return SessionSummary(
        id=meta["id"],
        path=path,
        preview=preview_from_head(head.head),
        created_at=created_at,
        updated_at=updated_at,
        cwd=Path(cwd) if cwd else None,
        git_branch=_optional_str(git.get("branch")),
        provider=_optional_str(head.model_provider),
    )


def summarize_session(path: Path, head_limit: int = DEFAULT_HEAD_RECORD_LIMIT) -> SessionSummary | None:
    """Summarize one rollout file, or None when it isn't a listable session.

    Raises:
        OSError: If the file can't be read.
    """
    return summarize_head(path, read_head(path, head_limit))
