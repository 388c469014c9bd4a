"""Rendering and the textual app hosting the session browser."""

import sys
from datetime import datetime

from rich import box
from rich.console import Console, Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Static

from codex_session.errors import CodexSessionError
from codex_session.formatting import format_relative, shorten_path, truncate_preview
from codex_session.sessions.models import SessionSummary
from codex_session.tui import keys
from codex_session.tui.browser import ActionKind, Browser, BrowserAction, Mode

# The screen is redrawn at least this often (relative times, status)
POLL_INTERVAL = 0.2

HELP_LINE = "  (enter=actions, /=search, :export PATH, dd=delete, q=quit)"
# Title, prompt, table borders + header, status line
CHROME_LINES = 8


def _visible_window(selected: int, total: int, rows: int) -> tuple[int, int]:
    """Slice of rows to draw so the selection stays on screen."""
    if total <= rows:
        return 0, total
    start = min(max(0, selected - rows // 2), total - rows)
    return start, start + rows


def _session_row(summary: SessionSummary, now: datetime | None) -> list[str]:
    updated = format_relative(summary.updated_at, now) if summary.updated_at else "unknown"
    cwd = shorten_path(summary.cwd, 28) if summary.cwd else "(unknown)"
    preview = truncate_preview(summary.preview) if summary.preview else "(no user input)"
    return [updated, summary.git_branch or "-", cwd, preview]


def _overlay(browser: Browser) -> RenderableType | None:
    session = browser.current_session()
    if browser.mode is Mode.ACTION_PROMPT:
        if session is None:
            text = "No session selected"
        else:
            cwd = str(session.cwd) if session.cwd else "(unknown)"
            text = (
                f"Session: {session.id}\nCWD: {cwd}\n\n"
                "Press r to resume, j to open a shell here, Esc to cancel."
            )
        return Panel(text, title="Select action", expand=False)
    if browser.mode is Mode.CONFIRM_DELETE:
        session_id = session.id if session else ""
        return Panel(
            f"Delete session {session_id}?\nThis cannot be undone.\n"
            "Press y to confirm or n to cancel.",
            title="Confirm delete",
            style="red",
            expand=False,
        )
    return None


def render(browser: Browser, height: int = 24, now: datetime | None = None) -> RenderableType:
    """Build the full-screen view of the browser's current state."""
    title = Text.assemble(("Codex Sessions", "cyan"), HELP_LINE)

    if browser.mode is Mode.SEARCH:
        prompt = f"/{browser.query}"
    elif browser.mode is Mode.COMMAND:
        prompt = f":{browser.command}"
    else:
        prompt = f"{len(browser.filtered)} sessions"

    table = Table(box=box.SQUARE, expand=True, header_style="bold")
    table.add_column("Updated", width=30, no_wrap=True)
    table.add_column("Branch", width=12, no_wrap=True)
    table.add_column("CWD", width=30, no_wrap=True)
    table.add_column("Conversation", ratio=1, no_wrap=True)

    visible = browser.visible_sessions
    start, end = _visible_window(browser.selected, len(visible), max(height - CHROME_LINES, 1))
    for idx in range(start, end):
        style = "black on cyan" if idx == browser.selected else None
        table.add_row(*_session_row(visible[idx], now), style=style)

    parts: list[RenderableType] = [title, Text(prompt)]
    overlay = _overlay(browser)
    if overlay is not None:
        parts.append(overlay)
    parts.append(table)
    if browser.status:
        parts.append(Text(browser.status))
    return Group(*parts)


class BrowserApp(App):
    """Full-screen host for a `Browser`.

    Named keys arrive through priority bindings so textual's own focus
    and quit bindings never see them; printable keys arrive via `on_key`.
    The app exits with the RESUME/JUMP action, or None when the user quit.
    """

    CSS = """
    Screen {
        background: $surface;
    }
    #view {
        height: 1fr;
    }
    """

    BINDINGS = [
        Binding(name, f"browser_key('{key}')", show=False, priority=True)
        for name, key in keys.BOUND_KEYS.items()
    ]

    def __init__(self, browser: Browser):
        super().__init__()
        self.browser = browser

    def compose(self) -> ComposeResult:
        yield Static(id="view")

    def on_mount(self) -> None:
        self.refresh_view()
        self.set_interval(POLL_INTERVAL, self.refresh_view)

    def refresh_view(self) -> None:
        self.query_one("#view", Static).update(render(self.browser, self.size.height))

    def on_key(self, event) -> None:
        key = keys.translate_key(event.key, event.character)
        if key is None:
            return
        event.stop()
        event.prevent_default()
        self.feed_key(key)

    def action_browser_key(self, key: str) -> None:
        self.feed_key(key)

    def feed_key(self, key: str) -> None:
        action = self.browser.handle_key(key)
        if not action.is_terminal:
            self.refresh_view()
        elif action.kind is ActionKind.QUIT:
            self.exit(None)
        else:
            self.exit(action)


def run_browser(
    sessions: list[SessionSummary],
    console: Console | None = None,
) -> BrowserAction | None:
    """Run the interactive browser over sessions.

    Deletions happen immediately; resuming or jumping is left to the
    caller, which acts on the returned action after the screen is restored.
    """
    console = console or Console()
    if not sessions:
        console.print("No Codex sessions recorded yet. Start a session to manage history.")
        return None
    if sys.stdin is None or not sys.stdin.isatty():
        raise CodexSessionError(
            "The interactive browser needs a terminal; use `codex-session list` instead",
            code="no_tty",
        )
    return BrowserApp(Browser(sessions)).run()
