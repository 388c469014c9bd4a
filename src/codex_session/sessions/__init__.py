"""Catalog engine for recorded Codex sessions.

- Date-sharded directory walk (year/month/day, newest first)
- Rollout filename keys: (timestamp, uuid) drive ordering and pagination
- Head summaries: a bounded prefix of each file decides whether it is a
  real interactive session and what preview to show
- Keyset cursors, so new sessions never disturb pages already served
"""

from codex_session.sessions.catalog import SessionCatalog, paths_match
from codex_session.sessions.cursor import decode_cursor, encode_cursor
from codex_session.sessions.export import export_session_chat
from codex_session.sessions.models import (
    INTERACTIVE_SOURCES,
    ListOptions,
    SessionDetail,
    SessionKey,
    SessionList,
    SessionSource,
    SessionSummary,
)

__all__ = [
    "SessionCatalog",
    "ListOptions",
    "SessionDetail",
    "SessionKey",
    "SessionList",
    "SessionSource",
    "SessionSummary",
    "INTERACTIVE_SOURCES",
    "decode_cursor",
    "encode_cursor",
    "export_session_chat",
    "paths_match",
]
