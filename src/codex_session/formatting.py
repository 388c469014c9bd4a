"""Display helpers shared by the CLI tables and the browser."""

from datetime import datetime, timezone
from pathlib import Path

PREVIEW_MAX_CHARS = 80


def truncate_preview(text: str, max_chars: int = PREVIEW_MAX_CHARS) -> str:
    """Cut text to max_chars, marking the cut with an ellipsis."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "…"


def truncate_left(text: str, max_chars: int) -> str:
    """Keep the tail of text, which is the informative end of a path."""
    if max_chars <= 0:
        return ""
    if len(text) <= max_chars:
        return text
    keep = max(max_chars - 1, 1)
    return "…" + text[-keep:]


def shorten_path(path: Path, max_chars: int) -> str:
    return truncate_left(str(path), max_chars)


def humanize_delta(seconds: float) -> str:
    """Render a duration like "5 minutes ago" / "in 2 hours"."""
    future = seconds < 0
    seconds = abs(seconds)
    if seconds < 45:
        return "now"
    units = [
        (86400 * 365, "year"),
        (86400 * 30, "month"),
        (86400 * 7, "week"),
        (86400, "day"),
        (3600, "hour"),
        (60, "minute"),
    ]
    for size, name in units:
        if seconds >= size:
            count = int(round(seconds / size))
            break
    else:
        count, name = 1, "minute"
    phrase = f"{count} {name}{'s' if count != 1 else ''}"
    return f"in {phrase}" if future else f"{phrase} ago"


def format_relative(value: datetime, now: datetime | None = None) -> str:
    """Relative age plus the absolute UTC time, e.g. "3 hours ago (2025-10-01 09:12)"."""
    now = now or datetime.now(timezone.utc)
    delta = (now - value).total_seconds()
    return f"{humanize_delta(delta)} ({value.astimezone(timezone.utc).strftime('%Y-%m-%d %H:%M')})"
