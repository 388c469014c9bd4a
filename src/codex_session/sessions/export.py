"""Transcript export.

The target extension picks the format:

- .jsonl: the rollout file copied byte for byte
- .json: a list of {"role", "content"} entries
- anything else: a Markdown transcript
"""

import json
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from codex_session.errors import ExportError
from codex_session.sessions.summary import (
    RESPONSE_ITEM,
    SESSION_META,
    iter_records,
    parse_session_meta,
)


@dataclass
class ChatEntry:
    role: str
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


def flatten_content(content: list[Any]) -> str:
    """Join a message's segments, one per line."""
    parts: list[str] = []
    for segment in content:
        if not isinstance(segment, dict):
            continue
        kind = segment.get("type")
        if kind in ("input_text", "output_text") and isinstance(segment.get("text"), str):
            parts.append(segment["text"])
        elif kind == "input_image":
            parts.append(f"[image: {segment.get('image_url', '')}]")
    return "\n".join(parts)


def read_session_entries(source: Path) -> tuple[dict[str, Any] | None, list[ChatEntry]]:
    """Read the first session_meta payload and every non-empty message."""
    meta: dict[str, Any] | None = None
    entries: list[ChatEntry] = []

    for record in iter_records(source):
        kind = record.get("type")
        payload = record["payload"]
        if kind == SESSION_META:
            if meta is None:
                meta = parse_session_meta(payload)
        elif kind == RESPONSE_ITEM and payload.get("type") == "message":
            content = payload.get("content")
            text = flatten_content(content) if isinstance(content, list) else ""
            if text.strip():
                entries.append(ChatEntry(role=str(payload.get("role", "")), content=text))

    return meta, entries


def render_markdown(meta: dict[str, Any] | None, entries: list[ChatEntry]) -> str:
    buf = ""
    if meta is not None:
        buf += f"# Session {meta.get('id')}\n\n"
        buf += f"- started: {meta.get('timestamp', '')}\n"
        buf += f"- cwd: {meta.get('cwd', '')}\n"
        if meta.get("model_provider"):
            buf += f"- provider: {meta['model_provider']}\n"
        buf += "\n"
    for entry in entries:
        buf += f"**{entry.role.upper()}**\n{entry.content.strip()}\n\n"
    return buf


def export_session_chat(source: Path, target: Path) -> None:
    """Export a rollout file to target.

    Raises:
        ExportError: If the format is unsupported or writing fails.
    """
    suffix = target.suffix.lower()
    if suffix == ".pdf":
        raise ExportError("PDF export is not supported; use .md, .json or .jsonl")

    try:
        target.parent.mkdir(parents=True, exist_ok=True)

        if suffix == ".jsonl":
            shutil.copyfile(source, target)
            return

        meta, entries = read_session_entries(source)
        if suffix == ".json":
            with open(target, "w", encoding="utf-8") as f:
                json.dump([e.to_dict() for e in entries], f, indent=2)
            return

        target.write_text(render_markdown(meta, entries), encoding="utf-8")
    except OSError as e:
        raise ExportError(f"Failed to export {source} to {target}: {e}")
