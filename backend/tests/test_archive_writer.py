"""Tests for migrating hot rows into JSONL partitions."""

from __future__ import annotations

import json
from datetime import datetime, timedelta
from pathlib import Path

import pytest

pytestmark = pytest.mark.asyncio

from conftest import FrozenClock, block_deletes, make_entry
from logplatform.core.entries import LogFilter
from logplatform.core.errors import ArchiveWriteError, StorageError
from logplatform.services.archive_writer import ArchiveWriter
from logplatform.services.hot_store import HotStore


def read_lines(path: Path) -> list[dict]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line.strip()]


class TestArchive:
    async def test_partition_naming(
        self, hot_store: HotStore, writer: ArchiveWriter, archive_root: Path
    ) -> None:
        await hot_store.insert(make_entry(service="svc-a", timestamp=datetime(2024, 1, 15, 10, 30)))

        assert await writer.archive(days_old=1) == 1

        path = archive_root / "2024-01-15" / "svc-a.jsonl"
        assert path.exists()
        assert "2024-01-15" in str(path) and str(path).endswith("svc-a.jsonl")

    async def test_two_entries_move_out_of_hot_store(
        self, hot_store: HotStore, writer: ArchiveWriter, archive_root: Path
    ) -> None:
        ts = datetime(2024, 1, 15, 9, 0)
        info = make_entry(service="X", timestamp=ts, level="info")
        error = make_entry(service="X", timestamp=ts + timedelta(minutes=1), level="error")
        await hot_store.insert(info)
        await hot_store.insert(error)

        assert await writer.archive(days_old=0) == 2

        assert await hot_store.query(LogFilter(service="X")) == []
        lines = read_lines(archive_root / "2024-01-15" / "X.jsonl")
        assert [line["id"] for line in lines] == [info.id, error.id]
        assert lines[0]["timestamp"] == "2024-01-15T09:00:00.000Z"
        assert lines[1]["level"] == "error"

    async def test_second_run_is_a_noop(self, hot_store: HotStore, writer: ArchiveWriter) -> None:
        await hot_store.insert(make_entry(timestamp=datetime(2024, 1, 15)))

        assert await writer.archive(days_old=1) == 1
        assert await writer.archive(days_old=1) == 0

    async def test_cutoff_is_start_of_day(self, hot_store: HotStore, writer: ArchiveWriter) -> None:
        # now = 2024-01-20 12:00, days_old=1 -> cutoff 2024-01-19 00:00
        before = make_entry(timestamp=datetime(2024, 1, 18, 23, 59, 59))
        after = make_entry(timestamp=datetime(2024, 1, 19, 0, 0, 1))
        await hot_store.insert(before)
        await hot_store.insert(after)

        assert await writer.archive(days_old=1) == 1
        assert await hot_store.get_by_id(after.id, "svc-a") is not None
        assert await hot_store.get_by_id(before.id, "svc-a") is None

    async def test_groups_by_date_and_service(
        self, hot_store: HotStore, writer: ArchiveWriter, archive_root: Path
    ) -> None:
        await hot_store.insert(make_entry(service="svc-a", timestamp=datetime(2024, 1, 14, 23, 0)))
        await hot_store.insert(make_entry(service="svc-a", timestamp=datetime(2024, 1, 15, 1, 0)))
        await hot_store.insert(make_entry(service="svc-b", timestamp=datetime(2024, 1, 15, 2, 0)))

        assert await writer.archive(days_old=1) == 3

        assert len(read_lines(archive_root / "2024-01-14" / "svc-a.jsonl")) == 1
        assert len(read_lines(archive_root / "2024-01-15" / "svc-a.jsonl")) == 1
        b_lines = read_lines(archive_root / "2024-01-15" / "svc-b.jsonl")
        assert [line["service"] for line in b_lines] == ["svc-b"]

    async def test_appends_never_truncate(
        self, hot_store: HotStore, writer: ArchiveWriter, archive_root: Path
    ) -> None:
        await hot_store.insert(make_entry(timestamp=datetime(2024, 1, 15, 8)))
        await writer.archive(days_old=1)
        await hot_store.insert(make_entry(timestamp=datetime(2024, 1, 15, 9)))
        await writer.archive(days_old=1)

        assert len(read_lines(archive_root / "2024-01-15" / "svc-a.jsonl")) == 2

    async def test_batch_size_bounds_one_run(
        self, hot_store: HotStore, archive_root: Path, clock: FrozenClock
    ) -> None:
        writer = ArchiveWriter(hot_store, str(archive_root), batch_size=2, clock=clock)
        for hour in range(5):
            await hot_store.insert(make_entry(timestamp=datetime(2024, 1, 15, hour)))

        assert await writer.archive(days_old=1) == 2
        assert await writer.archive(days_old=1) == 2
        assert await writer.archive(days_old=1) == 1
        assert await writer.archive(days_old=1) == 0

        lines = read_lines(archive_root / "2024-01-15" / "svc-a.jsonl")
        assert [line["timestamp"][11:13] for line in lines] == ["00", "01", "02", "03", "04"]

    async def test_context_is_written_as_json(
        self, hot_store: HotStore, writer: ArchiveWriter, archive_root: Path
    ) -> None:
        await hot_store.insert(make_entry(timestamp=datetime(2024, 1, 15), context={"user": {"id": 7}}))
        await writer.archive(days_old=1)

        [line] = read_lines(archive_root / "2024-01-15" / "svc-a.jsonl")
        assert line["context"] == {"user": {"id": 7}}

    async def test_append_failure_keeps_rows_and_propagates(
        self, hot_store: HotStore, tmp_path: Path, clock: FrozenClock
    ) -> None:
        blocked_root = tmp_path / "not-a-dir"
        blocked_root.write_text("occupied")
        writer = ArchiveWriter(hot_store, str(blocked_root), clock=clock)
        entry = make_entry(timestamp=datetime(2024, 1, 15))
        await hot_store.insert(entry)

        with pytest.raises(ArchiveWriteError):
            await writer.archive(days_old=1)

        assert await hot_store.get_by_id(entry.id, "svc-a") is not None

    async def test_delete_failure_propagates_and_keeps_both_copies(
        self, hot_store: HotStore, writer: ArchiveWriter, archive_root: Path, db_url: str
    ) -> None:
        entry = make_entry(timestamp=datetime(2024, 1, 15))
        await hot_store.insert(entry)
        await block_deletes(db_url)

        with pytest.raises(StorageError):
            await writer.archive(days_old=1)

        # duplicated across tiers, not lost
        assert await hot_store.get_by_id(entry.id, "svc-a") is not None
        lines = read_lines(archive_root / "2024-01-15" / "svc-a.jsonl")
        assert [line["id"] for line in lines] == [entry.id]

    async def test_unusable_service_name_fails_the_run(
        self, hot_store: HotStore, writer: ArchiveWriter, archive_root: Path
    ) -> None:
        entry = make_entry(service="../escape", timestamp=datetime(2024, 1, 15))
        await hot_store.insert(entry)

        with pytest.raises(ArchiveWriteError):
            await writer.archive(days_old=1)

        assert await hot_store.get_by_id(entry.id, "../escape") is not None
        assert not archive_root.exists()

    async def test_negative_days_old_rejected(self, writer: ArchiveWriter) -> None:
        with pytest.raises(ValueError):
            await writer.archive(days_old=-1)
