"""Directory scanning for the date-sharded rollout tree.

Layout::

    <codex_home>/sessions/<YYYY>/<MM>/<DD>/rollout-<YYYY-MM-DDTHH-MM-SS>-<uuid>.jsonl

Shard directories are walked newest first with a single primitive,
`list_shards`, reused at every level. Names that don't parse (stray
directories, editor droppings, non-rollout files) are skipped rather than
reported.
"""

import os
import uuid
from pathlib import Path
from typing import Callable, Iterator

from codex_session.sessions.cursor import parse_key_timestamp, parse_uuid
from codex_session.sessions.models import SessionKey

ROLLOUT_PREFIX = "rollout-"
ROLLOUT_SUFFIX = ".jsonl"


def _parse_unsigned(name: str, maximum: int) -> int | None:
    if not name or not all("0" <= ch <= "9" for ch in name):
        return None
    value = int(name)
    if value > maximum:
        return None
    return value


def parse_year(name: str) -> int | None:
    return _parse_unsigned(name, 0xFFFF)


def parse_month_or_day(name: str) -> int | None:
    return _parse_unsigned(name, 0xFF)


def list_shards(directory: Path, parse: Callable[[str], int | None]) -> list[tuple[int, Path]]:
    """List subdirectories whose names parse, sorted by value descending.

    Args:
        directory: Directory to list.
        parse: Maps a child name to its shard value, or None to skip it.

    Returns:
        (value, path) pairs, largest value first.

    Raises:
        OSError: If the directory can't be read.
    """
    shards: list[tuple[int, Path]] = []
    with os.scandir(directory) as entries:
        for entry in entries:
            if not entry.is_dir(follow_symlinks=False):
                continue
            value = parse(entry.name)
            if value is not None:
                shards.append((value, Path(entry.path)))
    shards.sort(key=lambda item: item[0], reverse=True)
    return shards


def walk_day_shards(root: Path) -> Iterator[Path]:
    """Yield every day directory under root, newest first.

    Lazy: a month is only listed once the caller has consumed the days
    before it.
    """
    for _, year_dir in list_shards(root, parse_year):
        for _, month_dir in list_shards(year_dir, parse_month_or_day):
            for _, day_dir in list_shards(month_dir, parse_month_or_day):
                yield day_dir


def parse_rollout_filename(name: str) -> SessionKey | None:
    """Decode a rollout filename into its (timestamp, id) key.

    The timestamp itself contains hyphens, so the UUID is found by trying
    hyphen positions from the right.
    """
    if not name.startswith(ROLLOUT_PREFIX) or not name.endswith(ROLLOUT_SUFFIX):
        return None
    core = name[len(ROLLOUT_PREFIX):len(name) - len(ROLLOUT_SUFFIX)]

    idx = core.rfind("-")
    while idx != -1:
        session_id = parse_uuid(core[idx + 1:])
        if session_id is not None:
            timestamp = parse_key_timestamp(core[:idx])
            if timestamp is None:
                return None
            return SessionKey(timestamp=timestamp, id=session_id)
        idx = core.rfind("-", 0, idx)
    return None


def list_rollout_files(day_dir: Path) -> list[tuple[SessionKey, Path]]:
    """List the decodable rollout files in one day directory (unsorted)."""
    files: list[tuple[SessionKey, Path]] = []
    with os.scandir(day_dir) as entries:
        for entry in entries:
            if not entry.is_file(follow_symlinks=False):
                continue
            key = parse_rollout_filename(entry.name)
            if key is not None:
                files.append((key, Path(entry.path)))
    return files


def iter_rollout_files(root: Path) -> Iterator[tuple[SessionKey, Path]]:
    """Yield every rollout file under root in catalog order.

    Catalog order is (timestamp desc, id desc). Day directories already
    partition by date, so sorting each day's files locally yields the
    global order.
    """
    for day_dir in walk_day_shards(root):
        day_files = list_rollout_files(day_dir)
        day_files.sort(key=lambda item: item[0], reverse=True)
        yield from day_files


def find_rollout_by_id(root: Path, session_id: uuid.UUID) -> Path | None:
    """Search the whole tree (any depth) for the rollout of session_id."""
    for dirpath, _, filenames in os.walk(root):
        for filename in filenames:
            key = parse_rollout_filename(filename)
            if key is not None and key.id == session_id:
                return Path(dirpath) / filename
    return None
