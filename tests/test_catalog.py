"""Tests for SessionCatalog: keyset paging, filters, scan cap, resolve and delete."""

import uuid
from datetime import datetime
from pathlib import Path

import pytest

from conftest import message_record, meta_record, user_event
from codex_session.errors import SessionNotFoundError
from codex_session.sessions.catalog import SessionCatalog, paths_match
from codex_session.sessions.cursor import decode_cursor
from codex_session.sessions.models import ListOptions, SessionSource


def ids_desc(n):
    """n random uuid strings, highest first (the catalog tie-break order)."""
    return [str(u) for u in sorted((uuid.uuid4() for _ in range(n)), reverse=True)]


@pytest.fixture
def catalog(codex_home):
    return SessionCatalog(codex_home)


@pytest.fixture
def four_sessions(write_session):
    """A, B, C share a timestamp on 2026-01-01; D is alone on 2026-01-02."""
    a, b, c, d = ids_desc(4)
    same = datetime(2026, 1, 1, 9, 30, 0)
    for sid in (a, b, c):
        write_session(same, sid)
    write_session(datetime(2026, 1, 2, 8, 0, 0), d)
    return {"A": a, "B": b, "C": c, "D": d}


# ═══════════════════════════════════════════════════════════════
# 1. KEYSET PAGINATION
# ═══════════════════════════════════════════════════════════════

class TestPagination:
    """Newest first, resuming strictly below the cursor."""

    def test_first_and_second_page(self, catalog, four_sessions):
        s = four_sessions

        first = catalog.list(ListOptions(limit=2))
        assert [x.id for x in first.sessions] == [s["D"], s["A"]]
        assert first.next_cursor

        second = catalog.list(ListOptions(limit=2, cursor=first.next_cursor))
        assert [x.id for x in second.sessions] == [s["B"], s["C"]]

    def test_cursor_names_last_emitted_session(self, catalog, four_sessions):
        first = catalog.list(ListOptions(limit=2))

        key = decode_cursor(first.next_cursor)

        assert str(key.id) == four_sessions["A"]

    def test_new_sessions_above_cursor_do_not_shift_pages(self, catalog, four_sessions, write_session):
        s = four_sessions
        first = catalog.list(ListOptions(limit=2))

        write_session(datetime(2026, 1, 3, 12, 0, 0), str(uuid.uuid4()))
        write_session(datetime(2026, 1, 2, 9, 0, 0), str(uuid.uuid4()))

        second = catalog.list(ListOptions(limit=2, cursor=first.next_cursor))
        assert [x.id for x in second.sessions] == [s["B"], s["C"]]

    def test_short_page_has_no_cursor(self, catalog, four_sessions):
        result = catalog.list(ListOptions(limit=10))

        assert len(result.sessions) == 4
        assert result.next_cursor is None
        assert result.scanned_files == 4
        assert not result.reached_scan_cap

    def test_invalid_cursor_starts_from_top(self, catalog, four_sessions):
        result = catalog.list(ListOptions(limit=1, cursor="garbage"))

        assert [x.id for x in result.sessions] == [four_sessions["D"]]

    def test_cursor_for_deleted_anchor_still_works(self, catalog, four_sessions):
        first = catalog.list(ListOptions(limit=2))
        catalog.delete(first.sessions[-1].path)

        second = catalog.list(ListOptions(limit=2, cursor=first.next_cursor))

        assert [x.id for x in second.sessions] == [four_sessions["B"], four_sessions["C"]]

    def test_limit_clamped_to_one(self, catalog, four_sessions):
        assert len(catalog.list(ListOptions(limit=0)).sessions) == 1

    def test_missing_sessions_dir_is_empty(self, tmp_path):
        result = SessionCatalog(tmp_path / "nowhere").list()

        assert result.sessions == []
        assert result.next_cursor is None

    def test_non_interactive_files_skipped(self, catalog, write_session):
        keep = str(uuid.uuid4())
        write_session(datetime(2026, 1, 1, 9, 0, 0), keep)
        write_session(datetime(2026, 1, 1, 10, 0, 0), str(uuid.uuid4()), source="exec")
        agent_only = str(uuid.uuid4())
        write_session(datetime(2026, 1, 1, 11, 0, 0), agent_only, records=[
            meta_record(agent_only), message_record("assistant", "working"),
        ])

        result = catalog.list()

        assert [x.id for x in result.sessions] == [keep]
        assert result.scanned_files == 3

    def test_stray_files_ignored(self, catalog, sessions_dir, write_session):
        sid = str(uuid.uuid4())
        write_session(datetime(2026, 1, 1, 9, 0, 0), sid)
        (sessions_dir / "2026" / "01" / "01" / "notes.md").write_text("hi")
        (sessions_dir / "archive").mkdir()

        assert [x.id for x in catalog.list().sessions] == [sid]


# ═══════════════════════════════════════════════════════════════
# 2. FILTERS
# ═══════════════════════════════════════════════════════════════

class TestFilters:
    """Working-directory and provider scoping."""

    def test_cwd_filter(self, catalog, write_session):
        here, there = str(uuid.uuid4()), str(uuid.uuid4())
        write_session(datetime(2026, 1, 1, 9, 0, 0), here, cwd="/proj")
        write_session(datetime(2026, 1, 1, 10, 0, 0), there, cwd="/other")

        result = catalog.list(ListOptions(show_all=False, cwd_filter=Path("/proj")))

        assert [x.id for x in result.sessions] == [here]

    def test_cwd_filter_ignores_formatting(self, catalog, write_session):
        sid = str(uuid.uuid4())
        write_session(datetime(2026, 1, 1, 9, 0, 0), sid, cwd="/proj/")

        for spelled in ("/proj", "/proj/", "/proj/./sub/.."):
            result = catalog.list(ListOptions(show_all=False, cwd_filter=Path(spelled)))
            assert [x.id for x in result.sessions] == [sid]

    def test_cwd_filter_narrows_even_with_show_all(self, catalog, write_session):
        write_session(datetime(2026, 1, 1, 9, 0, 0), str(uuid.uuid4()), cwd="/other")

        assert catalog.list(ListOptions(show_all=True, cwd_filter=Path("/proj"))).sessions == []

    def test_session_without_cwd_never_matches_filter(self, catalog, write_session):
        write_session(datetime(2026, 1, 1, 9, 0, 0), str(uuid.uuid4()), cwd=None)

        assert catalog.list(ListOptions(cwd_filter=Path("/proj"))).sessions == []

    def test_show_all_false_without_cwd_matches_nothing(self, catalog, four_sessions):
        assert catalog.list(ListOptions(show_all=False)).sessions == []

    def test_provider_filter_case_insensitive(self, catalog, write_session):
        oa, local = str(uuid.uuid4()), str(uuid.uuid4())
        write_session(datetime(2026, 1, 1, 9, 0, 0), oa, provider="openai")
        write_session(datetime(2026, 1, 1, 10, 0, 0), local, provider="ollama")
        write_session(datetime(2026, 1, 1, 11, 0, 0), str(uuid.uuid4()), provider=None)

        result = catalog.list(ListOptions(providers=["OpenAI"]))

        assert [x.id for x in result.sessions] == [oa]

    def test_paths_match(self, tmp_path):
        (tmp_path / "a").mkdir()
        assert paths_match(tmp_path / "a", tmp_path / "a" / ".." / "a")
        assert not paths_match(tmp_path / "a", tmp_path / "b")


# ═══════════════════════════════════════════════════════════════
# 3. SCAN CAP
# ═══════════════════════════════════════════════════════════════

class TestScanCap:
    """A bounded number of files are inspected per call."""

    def _hourly(self, write_session, count, **meta_kwargs):
        """One session per hour on 2026-01-01, returned newest first."""
        ids = []
        for hour in range(count):
            sid = str(uuid.uuid4())
            write_session(datetime(2026, 1, 1, hour, 0, 0), sid, **meta_kwargs)
            ids.append(sid)
        return ids[::-1]

    def test_cap_stops_scan_with_cursor(self, codex_home, write_session):
        ids = self._hourly(write_session, 5)
        catalog = SessionCatalog(codex_home, max_scan_files=3)

        result = catalog.list(ListOptions(limit=10))

        assert [x.id for x in result.sessions] == ids[:3]
        assert result.reached_scan_cap
        assert result.scanned_files == 3
        assert decode_cursor(result.next_cursor).timestamp.hour == 2

    def test_capped_pages_reach_the_end(self, codex_home, write_session):
        ids = self._hourly(write_session, 5)
        catalog = SessionCatalog(codex_home, max_scan_files=3)

        first = catalog.list(ListOptions(limit=10))
        second = catalog.list(ListOptions(limit=10, cursor=first.next_cursor))

        assert [x.id for x in second.sessions] == ids[3:]
        assert second.scanned_files == 2
        assert not second.reached_scan_cap
        assert second.next_cursor is None

    def test_files_above_cursor_do_not_use_up_the_cap(self, codex_home, write_session):
        ids = self._hourly(write_session, 8)
        catalog = SessionCatalog(codex_home, max_scan_files=2)

        seen, cursor = [], None
        for _ in range(10):
            page = catalog.list(ListOptions(limit=10, cursor=cursor))
            seen.extend(x.id for x in page.sessions)
            cursor = page.next_cursor
            if cursor is None:
                break

        assert seen == ids

    def test_cap_with_nothing_emitted_still_advances(self, codex_home, write_session):
        self._hourly(write_session, 5, source="exec")
        catalog = SessionCatalog(codex_home, max_scan_files=3)

        first = catalog.list(ListOptions(limit=10))
        assert first.sessions == []
        assert first.reached_scan_cap
        assert decode_cursor(first.next_cursor).timestamp.hour == 2

        second = catalog.list(ListOptions(limit=10, cursor=first.next_cursor))
        assert second.sessions == []
        assert second.next_cursor is None

    def test_full_page_before_cap_is_not_capped(self, codex_home, write_session):
        for hour in range(5):
            write_session(datetime(2026, 1, 1, hour, 0, 0), str(uuid.uuid4()))
        catalog = SessionCatalog(codex_home, max_scan_files=3)

        result = catalog.list(ListOptions(limit=2))

        assert len(result.sessions) == 2
        assert not result.reached_scan_cap


# ═══════════════════════════════════════════════════════════════
# 4. RESOLVE, DETAIL, DELETE
# ═══════════════════════════════════════════════════════════════

class TestSessionAccess:
    """Single-session lookups."""

    def test_resolve_by_id(self, catalog, write_session):
        sid = str(uuid.uuid4())
        path = write_session(datetime(2026, 1, 1, 9, 0, 0), sid)

        assert catalog.resolve(sid) == path
        assert catalog.resolve(sid.replace("-", "").upper()) == path

    def test_resolve_by_path(self, catalog, write_session):
        path = write_session(datetime(2026, 1, 1, 9, 0, 0), str(uuid.uuid4()))

        assert catalog.resolve(str(path)) == path

    def test_resolve_unknown_id(self, catalog, sessions_dir):
        with pytest.raises(SessionNotFoundError) as exc:
            catalog.resolve(str(uuid.uuid4()))
        assert exc.value.code == "not_found"

    def test_resolve_garbage(self, catalog):
        with pytest.raises(SessionNotFoundError):
            catalog.resolve("definitely-not-a-session")

    def test_detail(self, catalog, write_session):
        sid = str(uuid.uuid4())
        path = write_session(
            datetime(2026, 1, 1, 9, 0, 0), sid,
            instructions="Be brief.", branch="feature/x", source="vscode",
        )

        detail = catalog.detail(path)

        assert detail.summary.id == sid
        assert detail.instructions == "Be brief."
        assert detail.source is SessionSource.VSCODE
        assert detail.git_branch == "feature/x"
        assert detail.meta["id"] == sid

    def test_detail_rejects_non_session(self, catalog, write_session):
        sid = str(uuid.uuid4())
        path = write_session(datetime(2026, 1, 1, 9, 0, 0), sid, records=[meta_record(sid)])

        with pytest.raises(SessionNotFoundError):
            catalog.detail(path)

    def test_delete_removes_only_that_file(self, catalog, write_session):
        keep_id, drop_id = str(uuid.uuid4()), str(uuid.uuid4())
        keep = write_session(datetime(2026, 1, 1, 9, 0, 0), keep_id)
        drop = write_session(datetime(2026, 1, 1, 10, 0, 0), drop_id)

        catalog.delete(drop)

        assert not drop.exists()
        assert keep.exists()
        assert [x.id for x in catalog.list().sessions] == [keep_id]

    def test_export_markdown(self, catalog, write_session, tmp_path):
        path = write_session(datetime(2026, 1, 1, 9, 0, 0), str(uuid.uuid4()), records=[
            meta_record("0199a1b2-c3d4-7e5f-8a9b-0c1d2e3f4a5b"),
            message_record("user", "hello there"),
            user_event("hello there"),
        ])
        target = tmp_path / "out" / "chat.md"

        catalog.export(path, target)

        assert "hello there" in target.read_text()
