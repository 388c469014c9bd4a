"""Browser state machine.

The browser is modal. Each mode has one handler that consumes a key and
returns a BrowserAction; the event loop keeps going on NONE and stops on
anything else. Fields that belong to a mode (the command buffer, the
delete primer) are cleared when that mode is left.

Modes:
    NORMAL          navigate, dd to delete, enter for actions, q to quit
    SEARCH          incremental case-insensitive substring filter
    COMMAND         ":export PATH"
    ACTION_PROMPT   r resume, j jump to the session's directory
    CONFIRM_DELETE  y removes the rollout file
"""

import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable

from codex_session.errors import CodexSessionError
from codex_session.sessions.export import export_session_chat
from codex_session.sessions.models import SessionSummary
from codex_session.tui import keys

# Max gap between the two presses of "dd"
DELETE_SEQUENCE_TIMEOUT = 0.6


class Mode(str, Enum):
    NORMAL = "normal"
    SEARCH = "search"
    COMMAND = "command"
    ACTION_PROMPT = "action_prompt"
    CONFIRM_DELETE = "confirm_delete"


class ActionKind(str, Enum):
    NONE = "none"
    QUIT = "quit"
    RESUME = "resume"
    JUMP = "jump"


@dataclass(frozen=True)
class BrowserAction:
    """Result of handling one key.

    RESUME and JUMP carry the selected session; JUMP also carries the
    directory to change into before resuming.
    """
    kind: ActionKind
    session: SessionSummary | None = None
    directory: Path | None = None

    @property
    def is_terminal(self) -> bool:
        return self.kind is not ActionKind.NONE


NO_ACTION = BrowserAction(ActionKind.NONE)
QUIT = BrowserAction(ActionKind.QUIT)


class Browser:
    """In-memory browser over a materialized list of sessions."""

    def __init__(
        self,
        sessions: list[SessionSummary],
        clock: Callable[[], float] = time.monotonic,
        delete: Callable[[Path], None] = Path.unlink,
        export: Callable[[Path, Path], None] = export_session_chat,
    ):
        self.sessions = list(sessions)
        self.filtered: list[int] = []
        self.selected = 0
        self.mode = Mode.NORMAL
        self.query = ""
        self.command = ""
        self.delete_primed_at: float | None = None
        self.status: str | None = None
        self._clock = clock
        self._delete = delete
        self._export = export
        self.apply_filter()

    # ── Filtering and selection ─────────────────────────────

    def matches_query(self, summary: SessionSummary) -> bool:
        if not self.query:
            return True
        needle = self.query.lower()
        if needle in summary.id.lower():
            return True
        if summary.preview and needle in summary.preview.lower():
            return True
        return summary.cwd is not None and needle in str(summary.cwd).lower()

    def apply_filter(self) -> None:
        """Recompute the visible rows and clamp the selection into them."""
        self.filtered = [
            idx for idx, summary in enumerate(self.sessions)
            if self.matches_query(summary)
        ]
        if not self.filtered:
            self.selected = 0
        elif self.selected >= len(self.filtered):
            self.selected = len(self.filtered) - 1

    @property
    def visible_sessions(self) -> list[SessionSummary]:
        return [self.sessions[idx] for idx in self.filtered]

    def current_session(self) -> SessionSummary | None:
        if 0 <= self.selected < len(self.filtered):
            return self.sessions[self.filtered[self.selected]]
        return None

    def move_selection_up(self) -> None:
        if self.filtered and self.selected > 0:
            self.selected -= 1

    def move_selection_down(self) -> None:
        if self.filtered and self.selected + 1 < len(self.filtered):
            self.selected += 1

    # ── Key handling ────────────────────────────────────────

    def set_mode(self, mode: Mode) -> None:
        if mode is self.mode:
            return
        if self.mode is Mode.NORMAL:
            self.delete_primed_at = None
        elif self.mode is Mode.COMMAND:
            self.command = ""
        self.mode = mode

    def handle_key(self, key: str) -> BrowserAction:
        """Dispatch one key to the current mode's handler."""
        self.status = None
        if key == keys.CTRL_C:
            return QUIT
        handlers = {
            Mode.NORMAL: self._handle_normal,
            Mode.SEARCH: self._handle_search,
            Mode.COMMAND: self._handle_command,
            Mode.ACTION_PROMPT: self._handle_action_prompt,
            Mode.CONFIRM_DELETE: self._handle_confirm_delete,
        }
        return handlers[self.mode](key)

    def _handle_normal(self, key: str) -> BrowserAction:
        if key != "d":
            self.delete_primed_at = None

        if key in ("q", keys.ESC):
            return QUIT
        if key in (keys.UP, "k"):
            self.move_selection_up()
        elif key in (keys.DOWN, "j"):
            self.move_selection_down()
        elif key == "/":
            self.set_mode(Mode.SEARCH)
            self.query = ""
            self.apply_filter()
        elif key == ":":
            self.set_mode(Mode.COMMAND)
        elif key == keys.ENTER:
            if self.current_session() is not None:
                self.set_mode(Mode.ACTION_PROMPT)
        elif key == "d":
            self._prime_or_confirm_delete()
        return NO_ACTION

    def _prime_or_confirm_delete(self) -> None:
        now = self._clock()
        primed_at = self.delete_primed_at
        if primed_at is not None and now - primed_at <= DELETE_SEQUENCE_TIMEOUT:
            self.delete_primed_at = None
            if self.current_session() is not None:
                self.set_mode(Mode.CONFIRM_DELETE)
            return
        self.delete_primed_at = now
        self.status = "Press d again to delete the selected session"

    def _handle_search(self, key: str) -> BrowserAction:
        if key == keys.ESC:
            self.set_mode(Mode.NORMAL)
            if not self.query:
                self.apply_filter()
        elif key == keys.ENTER:
            self.set_mode(Mode.NORMAL)
        elif key == keys.BACKSPACE:
            self.query = self.query[:-1]
            self.apply_filter()
        elif key == keys.UP:
            self.move_selection_up()
        elif key == keys.DOWN:
            self.move_selection_down()
        elif keys.is_printable(key):
            self.query += key
            self.apply_filter()
        return NO_ACTION

    def _handle_command(self, key: str) -> BrowserAction:
        if key == keys.ESC:
            self.set_mode(Mode.NORMAL)
        elif key == keys.ENTER:
            self.execute_command(self.command.strip())
            self.set_mode(Mode.NORMAL)
        elif key == keys.BACKSPACE:
            self.command = self.command[:-1]
        elif keys.is_printable(key):
            self.command += key
        return NO_ACTION

    def _handle_action_prompt(self, key: str) -> BrowserAction:
        if key in (keys.ESC, "n"):
            self.set_mode(Mode.NORMAL)
            return NO_ACTION

        session = self.current_session()
        if session is None:
            return NO_ACTION
        if key == "r":
            self.set_mode(Mode.NORMAL)
            return BrowserAction(ActionKind.RESUME, session=session)
        if key == "j":
            self.set_mode(Mode.NORMAL)
            if session.cwd is None:
                self.status = "No CWD recorded for this session"
                return NO_ACTION
            return BrowserAction(ActionKind.JUMP, session=session, directory=session.cwd)
        return NO_ACTION

    def _handle_confirm_delete(self, key: str) -> BrowserAction:
        if key == "y":
            session = self.current_session()
            if session is not None:
                self._delete_session(session)
            self.set_mode(Mode.NORMAL)
        elif key in ("n", keys.ESC):
            self.set_mode(Mode.NORMAL)
        return NO_ACTION

    def _delete_session(self, session: SessionSummary) -> None:
        try:
            self._delete(session.path)
        except OSError as e:
            self.status = f"Delete failed: {e}"
            return
        self.sessions = [s for s in self.sessions if s.path != session.path]
        self.apply_filter()
        self.status = f"Deleted session {session.id}"

    # ── Commands ────────────────────────────────────────────

    def execute_command(self, command: str) -> None:
        if not command:
            return
        name, _, rest = command.partition(" ")
        if name != "export":
            self.status = f"Unknown command: {command}"
            return

        target = rest.strip()
        if not target:
            self.status = "usage: :export <file_path>"
            return
        session = self.current_session()
        if session is None:
            self.status = "No session selected"
            return

        dest = Path(target).expanduser()
        try:
            self._export(session.path, dest)
        except (CodexSessionError, OSError) as e:
            self.status = f"Export failed: {e}"
            return
        self.status = f"Exported {session.id} to {dest}"
