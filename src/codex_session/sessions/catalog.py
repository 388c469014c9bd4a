"""Session catalog over a Codex home directory.

Listing is keyset-paginated: a page ends with a cursor naming the last
session the caller saw, and the next page resumes strictly below it in
(timestamp desc, id desc) order. New sessions recorded above the cursor
therefore never shift or duplicate pages already handed out.

The scan is best-effort. Files that don't decode, don't read, or aren't
interactive sessions are skipped; only an unreadable sessions tree fails
the whole listing.
"""

import logging
from pathlib import Path

from codex_session.errors import SessionNotFoundError
from codex_session.sessions.cursor import decode_cursor, encode_cursor, parse_uuid
from codex_session.sessions.export import export_session_chat
from codex_session.sessions.models import (
    ListOptions,
    SessionDetail,
    SessionKey,
    SessionList,
    SessionSummary,
)
from codex_session.sessions.shards import find_rollout_by_id, iter_rollout_files
from codex_session.sessions.summary import (
    DEFAULT_HEAD_RECORD_LIMIT,
    read_head,
    summarize_head,
)

logger = logging.getLogger(__name__)

SESSIONS_SUBDIR = "sessions"
DEFAULT_MAX_SCAN_FILES = 10_000


def paths_match(a: Path, b: Path) -> bool:
    """Compare two directories after canonicalization.

    Falls back to plain path equality when either side can't be resolved.
    """
    try:
        return a.expanduser().resolve() == b.expanduser().resolve()
    except (OSError, RuntimeError):
        return a == b


class SessionCatalog:
    """Read/delete access to the rollout files under a Codex home.

    Files live at sessions/YYYY/MM/DD/rollout-<timestamp>-<uuid>.jsonl and
    are never modified here, only read or removed.
    """

    def __init__(
        self,
        codex_home: Path,
        head_record_limit: int = DEFAULT_HEAD_RECORD_LIMIT,
        max_scan_files: int = DEFAULT_MAX_SCAN_FILES,
    ):
        self.codex_home = codex_home
        self.sessions_dir = codex_home / SESSIONS_SUBDIR
        self.head_record_limit = head_record_limit
        self.max_scan_files = max_scan_files

    def summarize(self, path: Path) -> SessionSummary | None:
        """Summarize one rollout file (None when it isn't a listable session)."""
        return summarize_head(path, read_head(path, self.head_record_limit))

    def list(self, options: ListOptions | None = None) -> SessionList:
        """List one page of sessions, newest first.

        Args:
            options: Page size, cursor and filters.

        Returns:
            SessionList with at most options.limit sessions and a cursor
            when more may exist.

        Raises:
            OSError: If the sessions tree exists but can't be read.
        """
        options = options or ListOptions()
        if not self.sessions_dir.exists():
            return SessionList(sessions=[])

        anchor = decode_cursor(options.cursor) if options.cursor else None
        providers = {p.lower() for p in options.providers}

        collected: list[tuple[SessionKey, SessionSummary]] = []
        scanned_files = 0
        reached_scan_cap = False
        more_available = False
        last_inspected: SessionKey | None = None

        for key, path in iter_rollout_files(self.sessions_dir):
            # Exclusive anchor; files above it are skipped by key and not counted
            if anchor is not None:
                if key < anchor:
                    anchor = None
                else:
                    continue

            if scanned_files >= self.max_scan_files and len(collected) < options.limit:
                logger.debug(f"Scan cap of {self.max_scan_files} files reached at {path}")
                reached_scan_cap = True
                more_available = True
                break

            scanned_files += 1
            last_inspected = key
            try:
                summary = self.summarize(path)
            except OSError as e:
                logger.debug(f"Skipping unreadable rollout {path}: {e}")
                continue
            if summary is None:
                continue
            if not self._in_scope(summary, options):
                continue
            if providers and (summary.provider or "").lower() not in providers:
                continue

            collected.append((key, summary))
            if len(collected) == options.limit:
                more_available = True
                break

        next_cursor = None
        if more_available:
            if collected:
                next_cursor = encode_cursor(collected[-1][0])
            elif last_inspected is not None:
                # Nothing emitted before the cap; let the caller page past it
                next_cursor = encode_cursor(last_inspected)

        return SessionList(
            sessions=[summary for _, summary in collected],
            next_cursor=next_cursor,
            scanned_files=scanned_files,
            reached_scan_cap=reached_scan_cap,
        )

    @staticmethod
    def _in_scope(summary: SessionSummary, options: ListOptions) -> bool:
        if options.cwd_filter is not None:
            return summary.cwd is not None and paths_match(summary.cwd, options.cwd_filter)
        return options.show_all

    def resolve(self, query: str) -> Path:
        """Resolve a file path or session id to a rollout file.

        Raises:
            SessionNotFoundError: If the query is neither an existing path
                nor the id of a recorded session.
        """
        path = Path(query).expanduser()
        if path.exists():
            return path

        session_id = parse_uuid(query.strip())
        if session_id is None:
            raise SessionNotFoundError(query, f"{query} is not a valid session id or file path")
        if not self.sessions_dir.exists():
            raise SessionNotFoundError(query)

        found = find_rollout_by_id(self.sessions_dir, session_id)
        if found is None:
            raise SessionNotFoundError(query)
        return found

    def detail(self, path: Path) -> SessionDetail:
        """Load the full detail view of one session.

        Raises:
            SessionNotFoundError: If the file isn't a listable session.
            OSError: If the file can't be read.
        """
        head = read_head(path, self.head_record_limit)
        summary = summarize_head(path, head)
        if summary is None:
            raise SessionNotFoundError(str(path), f"{path} is not a recorded interactive session")

        meta = head.meta or {}
        instructions = meta.get("instructions")
        return SessionDetail(
            summary=summary,
            instructions=instructions if isinstance(instructions, str) and instructions else None,
            source=head.source,
            git_branch=summary.git_branch,
            meta=head.meta,
        )

    def delete(self, path: Path) -> None:
        """Remove a rollout file. This cannot be undone."""
        path.unlink()
        logger.debug(f"Deleted rollout {path}")

    def export(self, path: Path, target: Path) -> None:
        export_session_chat(path, target)
