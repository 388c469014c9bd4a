"""Shared fixtures: build real rollout trees under tmp_path."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

import pytest


def meta_record(session_id: str, cwd: str | None = "/proj", source: str | None = "cli",
                provider: str | None = "openai", branch: str | None = "main",
                instructions: str | None = None, timestamp: str = "2026-01-01T10:00:00.000Z") -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": session_id,
        "timestamp": timestamp,
        "originator": "codex_cli_rs",
        "cli_version": "0.40.0",
    }
    if cwd is not None:
        payload["cwd"] = cwd
    if source is not None:
        payload["source"] = source
    if provider is not None:
        payload["model_provider"] = provider
    if branch is not None:
        payload["git"] = {"commit_hash": "abc123", "branch": branch}
    if instructions is not None:
        payload["instructions"] = instructions
    return {"timestamp": timestamp, "type": "session_meta", "payload": payload}


def message_record(role: str, *texts: str, kind: str | None = None,
                   timestamp: str = "2026-01-01T10:00:01.000Z") -> dict[str, Any]:
    segment_type = kind or ("input_text" if role == "user" else "output_text")
    return {
        "timestamp": timestamp,
        "type": "response_item",
        "payload": {
            "type": "message",
            "role": role,
            "content": [{"type": segment_type, "text": t} for t in texts],
        },
    }


def user_event(message: str = "hello", timestamp: str = "2026-01-01T10:00:02.000Z") -> dict[str, Any]:
    return {
        "timestamp": timestamp,
        "type": "event_msg",
        "payload": {"type": "user_message", "message": message, "kind": "plain"},
    }


def rollout_path(sessions_dir: Path, when: datetime, session_id: str) -> Path:
    day_dir = sessions_dir / f"{when.year:04d}" / f"{when.month:02d}" / f"{when.day:02d}"
    return day_dir / f"rollout-{when.strftime('%Y-%m-%dT%H-%M-%S')}-{session_id}.jsonl"


def write_lines(path: Path, records: list[Any]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        for record in records:
            f.write(record if isinstance(record, str) else json.dumps(record))
            f.write("\n")
    return path


@pytest.fixture
def codex_home(tmp_path) -> Path:
    """Temporary Codex home (avoids touching the real ~/.codex)."""
    home = tmp_path / "codex"
    home.mkdir()
    return home


@pytest.fixture
def sessions_dir(codex_home) -> Path:
    d = codex_home / "sessions"
    d.mkdir()
    return d


@pytest.fixture
def write_session(sessions_dir) -> Callable[..., Path]:
    """Write an interactive session rollout; override records to taste."""

    def _write(when: datetime, session_id: str, records: list[Any] | None = None,
               preview: str = "fix the login bug", **meta_kwargs: Any) -> Path:
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        if records is None:
            records = [
                meta_record(session_id, **meta_kwargs),
                message_record("user", preview),
                user_event(preview),
                message_record("assistant", "On it."),
            ]
        return write_lines(rollout_path(sessions_dir, when, session_id), records)

    return _write
