"""Tests for session listing, recency and expiry cleanup."""

from __future__ import annotations

import os
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from conftest import CountingStore, at, text_message, write_lines
from wave_sessions.paths import WORKDIR_MARKER, PathEncoder
from wave_sessions.services.catalog import SessionCatalog


@pytest.fixture
def catalog(root: Path, store: CountingStore) -> SessionCatalog:
    return SessionCatalog(root, store, PathEncoder())


async def _session(catalog: SessionCatalog, session_id: str, workdir: str, *minutes: int, subagent: bool = False) -> Path:
    project = await catalog.encoder.resolve(workdir, catalog.root)
    name = f'subagent-{session_id}.jsonl' if subagent else f'{session_id}.jsonl'
    path = project.encoded_path / name
    messages = [text_message(f'm{m}', timestamp=at(m), total_tokens=100 + m) for m in minutes]
    if messages:
        await catalog.store.append_records(path, messages)
    else:
        await catalog.store.touch(path)
    return path


class TestListing:
    @pytest.mark.asyncio
    async def test_latest_first_by_last_activity(self, catalog: SessionCatalog) -> None:
        # IDs deliberately sort opposite to activity
        await _session(catalog, 'zzz-older', '/work', 0, 1)
        await _session(catalog, 'aaa-newer', '/work', 0, 2)

        summaries = await catalog.list_sessions('/work')

        assert [s.id for s in summaries] == ['aaa-newer', 'zzz-older']
        assert summaries[0].last_active_at == at(2)
        assert summaries[0].started_at == at(0)
        assert summaries[0].latest_total_tokens == 102
        assert summaries[0].workdir == '/work'

    @pytest.mark.asyncio
    async def test_ties_broken_by_id(self, catalog: SessionCatalog) -> None:
        await _session(catalog, 'a', '/work', 3)
        await _session(catalog, 'b', '/work', 3)
        assert [s.id for s in await catalog.list_sessions('/work')] == ['b', 'a']

    @pytest.mark.asyncio
    async def test_listing_never_reads_full_transcripts(self, catalog: SessionCatalog, store: CountingStore) -> None:
        paths = [await _session(catalog, f's{i}', '/work', *range(i + 1)) for i in range(5)]
        store.calls.clear()

        summaries = await catalog.list_sessions('/work')

        assert len(summaries) == 5
        assert store.count('read_all') == 0
        for path in paths:
            assert store.calls['peek_last_record', path] <= 1
            assert store.calls['peek_first_record', path] <= 1

    @pytest.mark.asyncio
    async def test_subagents_are_opt_in(self, catalog: SessionCatalog) -> None:
        await _session(catalog, 'main-1', '/work', 1)
        await _session(catalog, 'helper', '/work', 2, subagent=True)

        default = await catalog.list_sessions('/work')
        everything = await catalog.list_sessions('/work', include_subagents=True)

        assert [s.id for s in default] == ['main-1']
        assert [(s.id, s.session_type) for s in everything] == [('helper', 'subagent'), ('main-1', 'main')]

    @pytest.mark.asyncio
    async def test_empty_session_uses_file_times(self, catalog: SessionCatalog) -> None:
        path = await _session(catalog, 'fresh', '/work')
        mtime = datetime(2026, 9, 1, tzinfo=UTC)
        os.utime(path, (mtime.timestamp(), mtime.timestamp()))

        [summary] = await catalog.list_sessions('/work')

        assert summary.last_active_at == mtime
        assert summary.latest_total_tokens == 0

    @pytest.mark.asyncio
    async def test_corrupted_session_is_skipped(self, catalog: SessionCatalog) -> None:
        good = await _session(catalog, 'good', '/work', 1)
        write_lines(good.with_name('bad.jsonl'), ['{"role": "user"', ''])

        assert [s.id for s in await catalog.list_sessions('/work')] == ['good']

    @pytest.mark.asyncio
    async def test_non_session_files_are_ignored(self, catalog: SessionCatalog) -> None:
        good = await _session(catalog, 'good', '/work', 1)
        write_lines(good.with_name('notes.txt'), ['hello'])
        write_lines(good.with_name('Upper.jsonl'), ['{}'])
        assert [s.id for s in await catalog.list_sessions('/work')] == ['good']

    @pytest.mark.asyncio
    async def test_unknown_workdir_lists_nothing(self, catalog: SessionCatalog, root: Path) -> None:
        assert await catalog.list_sessions('/nowhere') == []
        assert not root.exists()

    @pytest.mark.asyncio
    async def test_all_workdirs(self, catalog: SessionCatalog) -> None:
        long_workdir = '/' + 'nested/' * 40 + 'repo'
        await _session(catalog, 'a', '/work/a', 1)
        await _session(catalog, 'b', '/work/b-2', 2)
        await _session(catalog, 'c', long_workdir, 3)
        (catalog.root / 'orphan+00000000').mkdir()

        summaries = await catalog.list_sessions(None, include_all_workdirs=True)

        assert [(s.id, s.workdir) for s in summaries] == [
            ('c', long_workdir),
            ('b', '/work/b-2'),
            ('a', '/work/a'),
        ]

    @pytest.mark.asyncio
    async def test_workdir_required_without_aggregation(self, catalog: SessionCatalog) -> None:
        with pytest.raises(ValueError):
            await catalog.list_sessions(None)

    @pytest.mark.asyncio
    async def test_find_latest_ignores_subagents(self, catalog: SessionCatalog) -> None:
        await _session(catalog, 'main-1', '/work', 1)
        await _session(catalog, 'helper', '/work', 9, subagent=True)

        latest = await catalog.find_latest('/work')
        assert latest is not None and latest.id == 'main-1'
        assert await catalog.find_latest('/elsewhere') is None

    @pytest.mark.asyncio
    async def test_probe_exists_checks_both_namings(self, catalog: SessionCatalog) -> None:
        await _session(catalog, 'helper', '/work', 1, subagent=True)
        assert await catalog.probe_exists('helper', '/work')
        assert not await catalog.probe_exists('other', '/work')


class TestCleanup:
    @pytest.mark.asyncio
    async def test_expired_sessions_are_deleted(self, catalog: SessionCatalog) -> None:
        old = await _session(catalog, 'old', '/old-project', 0)
        old_helper = await _session(catalog, 'old-helper', '/work', 0, subagent=True)
        recent = await _session(catalog, 'recent', '/work', 60 * 24 * 20)

        now = at(60 * 24 * 31)
        deleted = await catalog.cleanup_expired(timedelta(days=30), now=now)

        assert deleted == 2
        assert not old.exists()
        assert not old_helper.exists()
        assert recent.exists()
        # Directory left empty is removed, the one still holding a session is kept
        assert not old.parent.exists()
        assert recent.parent.exists()

    @pytest.mark.asyncio
    async def test_nothing_expired(self, catalog: SessionCatalog) -> None:
        path = await _session(catalog, 'recent', '/work', 0)
        assert await catalog.cleanup_expired(timedelta(days=30), now=at(60)) == 0
        assert path.exists()

    @pytest.mark.asyncio
    async def test_missing_root(self, catalog: SessionCatalog) -> None:
        assert await catalog.cleanup_expired(timedelta(days=30)) == 0

    @pytest.mark.asyncio
    async def test_truncated_directory_with_only_marker_is_removed(self, catalog: SessionCatalog) -> None:
        long_workdir = '/' + 'nested/' * 40 + 'repo'
        path = await _session(catalog, 'old', long_workdir, 0)
        assert (path.parent / WORKDIR_MARKER).exists()

        assert await catalog.cleanup_expired(timedelta(days=1), now=at(60 * 24 * 2)) == 1
        assert not path.parent.exists()

    @pytest.mark.asyncio
    async def test_remove_empty_project_directories(self, catalog: SessionCatalog, root: Path) -> None:
        await _session(catalog, 'keep', '/work', 0)
        (root / '-empty').mkdir()
        (root / '-also-empty').mkdir()

        assert await catalog.remove_empty_project_directories() == 2
        assert sorted(p.name for p in root.iterdir()) == ['-work']
