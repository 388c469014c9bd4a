"""Pagination cursor codec.

A cursor is the key of the last session a caller saw, rendered as
``"<YYYY-MM-DDTHH-MM-SS>|<uuid>"``. The timestamp format is the one
embedded in rollout filenames, so a cursor never carries more precision
than the key it came from. Raw tokens are decoded once at the catalog
boundary; everything past that works with SessionKey.
"""

import re
import uuid
from datetime import datetime, timezone

from codex_session.sessions.models import SessionKey

KEY_TIMESTAMP_FORMAT = "%Y-%m-%dT%H-%M-%S"

_TIMESTAMP_RE = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}T[0-9]{2}-[0-9]{2}-[0-9]{2}$")
_UUID_RE = re.compile(
    r"^(?:[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"
    r"|[0-9a-fA-F]{32})$"
)


def parse_uuid(text: str) -> uuid.UUID | None:
    """Parse a hyphenated or 32-digit UUID, rejecting every other spelling."""
    if not _UUID_RE.match(text):
        return None
    return uuid.UUID(text)


def parse_key_timestamp(text: str) -> datetime | None:
    """Parse a filename/cursor timestamp as a UTC instant."""
    if not _TIMESTAMP_RE.match(text):
        return None
    try:
        parsed = datetime.strptime(text, KEY_TIMESTAMP_FORMAT)
    except ValueError:
        return None
    return parsed.replace(tzinfo=timezone.utc)


def format_key_timestamp(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(KEY_TIMESTAMP_FORMAT)


def encode_cursor(key: SessionKey) -> str:
    return f"{format_key_timestamp(key.timestamp)}|{key.id}"


def decode_cursor(token: str) -> SessionKey | None:
    """Decode a cursor token; None means "start from the top"."""
    ts_part, sep, id_part = token.partition("|")
    if not sep:
        return None
    timestamp = parse_key_timestamp(ts_part)
    session_id = parse_uuid(id_part)
    if timestamp is None or session_id is None:
        return None
    return SessionKey(timestamp=timestamp, id=session_id)
