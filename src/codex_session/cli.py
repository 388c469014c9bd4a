"""CLI interface for codex-session.

Browse and manage the sessions Codex records under ~/.codex/sessions.
Defaults come from ~/.codex-session/config.yaml so you don't need flags
for every run.

Quick start:
    codex-session                          # Interactive browser
    codex-session list --cwd .             # Sessions recorded in this project
    codex-session resume --last            # Pick up the most recent session
    codex-session info <id>                # Session details
    codex-session delete <id>              # Remove a session (asks first)
    codex-session export <id> chat.md      # Save a transcript
"""

import json
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.prompt import Confirm, Prompt
from rich.table import Table

from codex_session import __version__
from codex_session.config import Settings, get_settings, resolve_codex_home
from codex_session.errors import CodexSessionError
from codex_session.formatting import format_relative, shorten_path, truncate_preview
from codex_session.sessions import (
    ListOptions,
    SessionCatalog,
    SessionDetail,
    SessionSummary,
)
from codex_session.tui import ActionKind, run_browser

app = typer.Typer(
    name="codex-session",
    help="Inspect Codex session history",
    no_args_is_help=False,
    invoke_without_command=True,
)

console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)


@dataclass
class CliState:
    """Resolved global options, shared with every subcommand."""
    codex_home: Path
    codex_bin: str
    settings: Settings

    @property
    def catalog(self) -> SessionCatalog:
        return SessionCatalog(
            self.codex_home,
            head_record_limit=self.settings.head_record_limit,
            max_scan_files=self.settings.max_scan_files,
        )


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _fail(message: str) -> None:
    err_console.print(f"[red]{escape(message)}[/red]")
    raise typer.Exit(1)


def _state(ctx: typer.Context) -> CliState:
    return ctx.obj


def _scope(cwd: Path | None) -> tuple[bool, Path | None]:
    """An explicit --cwd narrows the listing; otherwise list everything."""
    if cwd is not None:
        return False, cwd
    return True, None


def _split_providers(values: list[str] | None) -> list[str]:
    providers: list[str] = []
    for value in values or []:
        providers.extend(part.strip() for part in value.split(","))
    return providers


def _format_updated(summary: SessionSummary) -> str:
    return format_relative(summary.updated_at) if summary.updated_at else "unknown"


def _format_cwd(summary: SessionSummary, max_chars: int = 28) -> str:
    return shorten_path(summary.cwd, max_chars) if summary.cwd else "(unknown)"


def _format_preview(summary: SessionSummary) -> str:
    return truncate_preview(summary.preview or "(no user message yet)")


def resume_session(codex_bin: str, session_id: str, cwd: Path | None = None) -> None:
    """Hand the terminal over to `codex resume <id>`.

    Raises:
        CodexSessionError: If codex can't be started or exits non-zero.
    """
    logger.debug(f"Running {codex_bin} resume {session_id} in {cwd or Path.cwd()}")
    try:
        result = subprocess.run([codex_bin, "resume", session_id], cwd=cwd)
    except OSError as e:
        raise CodexSessionError(f"failed to spawn {codex_bin}: {e}", code="spawn")
    if result.returncode != 0:
        raise CodexSessionError(f"codex exited with status {result.returncode}", code="spawn")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    codex_home: Path = typer.Option(
        None, "--codex-home", metavar="DIR", help="Override the location of the Codex home directory"),
    codex_bin: str = typer.Option(
        None, "--codex-bin", metavar="PATH", help="Codex binary to run when resuming a session"),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log scan details to stderr"),
) -> None:
    """Inspect Codex session history.

    Run with no arguments to open the interactive browser.
    """
    _setup_logging(verbose)
    try:
        settings = get_settings()
        home = resolve_codex_home(codex_home)
    except CodexSessionError as e:
        _fail(str(e))

    ctx.obj = CliState(codex_home=home, codex_bin=codex_bin or settings.codex_bin, settings=settings)

    if ctx.invoked_subcommand is None:
        _run_interactive(ctx.obj)


def _run_interactive(state: CliState) -> None:
    try:
        page = state.catalog.list(ListOptions(limit=state.settings.browser_limit, show_all=True))
        outcome = run_browser(page.sessions, console=console)
        if outcome is None:
            return
        if outcome.kind is ActionKind.JUMP:
            console.print(f"Changed directory to {escape(str(outcome.directory))}")
        console.print(f"Resuming session [cyan]{outcome.session.id}[/cyan]")
        resume_session(state.codex_bin, outcome.session.id, cwd=outcome.directory)
    except (CodexSessionError, OSError) as e:
        _fail(str(e))


# ─── list ───────────────────────────────────────────────────────

def list_sessions(
    ctx: typer.Context,
    all_sessions: bool = typer.Option(
        False, "--all", "-a", help="Include sessions from every project directory (the default without --cwd)"),
    cwd: Path = typer.Option(
        None, "--cwd", metavar="DIR", help="Restrict the listing to sessions recorded under this directory"),
    limit: int = typer.Option(
        None, "--limit", min=1, help="Maximum number of sessions to display"),
    cursor: str = typer.Option(
        None, "--cursor", metavar="TOKEN", help="Pagination cursor returned by a previous invocation"),
    provider: list[str] = typer.Option(
        None, "--provider", help="Filter by provider id (comma separated)"),
    json_output: bool = typer.Option(
        False, "--json", help="Emit machine-readable JSON instead of a table"),
) -> None:
    """List recorded sessions and show their metadata."""
    state = _state(ctx)
    show_all, cwd_filter = _scope(cwd)
    options = ListOptions(
        limit=limit or state.settings.list_limit,
        cursor=cursor,
        providers=_split_providers(provider),
        show_all=show_all,
        cwd_filter=cwd_filter,
    )

    try:
        page = state.catalog.list(options)
    except OSError as e:
        _fail(f"Could not read {state.codex_home}: {e}")

    if json_output:
        typer.echo(json.dumps(page.to_dict(), indent=2))
        return

    if not page.sessions:
        console.print("[yellow]No Codex sessions were found.[/yellow]")
        console.print(
            "Use [green]--cwd[/green] to focus on a directory "
            "(e.g. [cyan]codex-session list --cwd ~/Projects/app[/cyan]).")
        return

    table = Table()
    table.add_column("Updated", no_wrap=True)
    table.add_column("Branch")
    table.add_column("CWD")
    table.add_column("Conversation", max_width=80)

    for summary in page.sessions:
        table.add_row(
            _format_updated(summary),
            summary.git_branch or "-",
            _format_cwd(summary),
            escape(_format_preview(summary)),
        )

    console.print(table)
    cap_note = " (hit scan cap)" if page.reached_scan_cap else ""
    console.print(f"Scanned {page.scanned_files} files{cap_note}.")

    if page.next_cursor:
        console.print(
            f"More sessions available. Continue with [green]--cursor {escape(page.next_cursor)}[/green]")

    first = page.sessions[0]
    location = shorten_path(first.cwd, 32) if first.cwd else "unknown location"
    console.print(
        f"To resume, run [cyan]{first.resume_hint}[/cyan] ({escape(location)}).")


app.command("list")(list_sessions)
app.command("ls", hidden=True)(list_sessions)


# ─── resume ─────────────────────────────────────────────────────

def _pick_session(sessions: list[SessionSummary]) -> SessionSummary:
    table = Table(title="Recorded sessions")
    table.add_column("#", style="dim")
    table.add_column("Updated", no_wrap=True)
    table.add_column("Branch")
    table.add_column("CWD")
    table.add_column("Conversation", max_width=60)

    for i, summary in enumerate(sessions, 1):
        table.add_row(
            str(i),
            _format_updated(summary),
            summary.git_branch or "-",
            _format_cwd(summary),
            escape(_format_preview(summary)),
        )

    console.print(table)
    choice = Prompt.ask(
        "Pick a session to resume",
        choices=[str(i) for i in range(1, len(sessions) + 1)],
        default="1",
    )
    return sessions[int(choice) - 1]


@app.command()
def resume(
    ctx: typer.Context,
    session: str = typer.Argument(
        None, metavar="SESSION_ID_OR_PATH", help="Session id or path to resume"),
    last: bool = typer.Option(
        False, "--last", help="Resume the most recent session"),
    all_sessions: bool = typer.Option(
        False, "--all", help="Include sessions from every project directory when prompting"),
    cwd: Path = typer.Option(
        None, "--cwd", metavar="DIR", help="Restrict prompting to sessions recorded under this directory"),
    limit: int = typer.Option(
        None, "--limit", min=1, help="Show at most this many sessions in the picker"),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Print the command but do not execute it"),
) -> None:
    """Spawn `codex resume` for a recorded session."""
    state = _state(ctx)
    catalog = state.catalog

    try:
        if session:
            summary = catalog.detail(catalog.resolve(session)).summary
        else:
            show_all, cwd_filter = _scope(cwd)
            page = catalog.list(ListOptions(
                limit=limit or state.settings.picker_limit,
                show_all=show_all,
                cwd_filter=cwd_filter,
            ))
            if not page.sessions:
                _fail("No recorded sessions available to resume")
            summary = page.sessions[0] if last else _pick_session(page.sessions)

        if dry_run:
            console.print(f"[cyan]{escape(state.codex_bin)} resume {summary.id}[/cyan]")
            return

        console.print(f"Resuming session [cyan]{summary.id}[/cyan]")
        resume_session(state.codex_bin, summary.id)
    except (CodexSessionError, OSError) as e:
        _fail(str(e))


# ─── info / delete / export ─────────────────────────────────────

def _print_detail(detail: SessionDetail) -> None:
    summary = detail.summary
    console.print(f"[bold]Session :[/bold] [green]{summary.id}[/green]")
    console.print(f"[bold]Path    :[/bold] {escape(str(summary.path))}")
    if summary.cwd:
        console.print(f"[bold]CWD     :[/bold] {escape(str(summary.cwd))}")
    if summary.provider:
        console.print(f"[bold]Provider:[/bold] {escape(summary.provider)}")
    if detail.git_branch:
        console.print(f"[bold]Git     :[/bold] {escape(detail.git_branch)}")
    if summary.created_at:
        console.print(f"[bold]Started :[/bold] {format_relative(summary.created_at)}")
    if summary.updated_at:
        console.print(f"[bold]Updated :[/bold] {format_relative(summary.updated_at)}")
    if detail.source:
        console.print(f"[bold]Source  :[/bold] {detail.source.value}")
    if detail.instructions:
        console.print(f"[bold]Notes   :[/bold] {escape(truncate_preview(detail.instructions))}")
    console.print(f"[bold]Resume  :[/bold] [cyan]{summary.resume_hint}[/cyan]")


@app.command()
def info(
    ctx: typer.Context,
    session: str = typer.Argument(..., metavar="SESSION_ID_OR_PATH", help="Session id or path to show"),
) -> None:
    """Show details about a session."""
    catalog = _state(ctx).catalog
    try:
        detail = catalog.detail(catalog.resolve(session))
    except (CodexSessionError, OSError) as e:
        _fail(str(e))
    _print_detail(detail)


@app.command()
def delete(
    ctx: typer.Context,
    session: str = typer.Argument(..., metavar="SESSION_ID_OR_PATH", help="Session id or path to delete"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    """Delete a recorded session."""
    catalog = _state(ctx).catalog
    try:
        path = catalog.resolve(session)
        detail = catalog.detail(path)
        if not yes:
            console.print(
                f"Delete session [red]{detail.summary.id}[/red] recorded at {escape(str(path))}?")
            if not Confirm.ask("This cannot be undone. Continue?", default=False):
                console.print("Aborted")
                return
        catalog.delete(path)
    except (CodexSessionError, OSError) as e:
        _fail(str(e))
    console.print(f"Removed session [red]{detail.summary.id}[/red]")


@app.command()
def export(
    ctx: typer.Context,
    session: str = typer.Argument(..., metavar="SESSION_ID_OR_PATH", help="Session id or path to export"),
    target: Path = typer.Argument(..., help="Output file (.md, .json or .jsonl)"),
) -> None:
    """Export a session transcript to a file."""
    catalog = _state(ctx).catalog
    try:
        path = catalog.resolve(session)
        catalog.export(path, target)
    except (CodexSessionError, OSError) as e:
        _fail(str(e))
    console.print(f"[green]Exported {escape(str(path))} to {escape(str(target))}[/green]")


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"codex-session version {__version__}")


if __name__ == "__main__":
    app()
