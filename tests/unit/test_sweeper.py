from __future__ import annotations

import asyncio
import io
from datetime import timedelta
from pathlib import Path
from typing import Any

from _pytest.monkeypatch import MonkeyPatch

from src.models.records import FileRecord, TextRecord
from src.share.sweeper import EvictionSweeper
from src.utils.expiring_store import ExpiringStore
from src.utils.file_store import BlobFileStore


def _setup(tmp_path: Path, clock: Any) -> tuple[
    ExpiringStore[TextRecord], ExpiringStore[FileRecord], BlobFileStore, EvictionSweeper
]:
    texts: ExpiringStore[TextRecord] = ExpiringStore("texts", clock=clock)
    files: ExpiringStore[FileRecord] = ExpiringStore("files", clock=clock)
    blobs = BlobFileStore(tmp_path / "uploads")
    blobs.open()
    sweeper = EvictionSweeper(texts, files, blobs, interval=0.01, clock=clock)
    return texts, files, blobs, sweeper


def _file_record(code: str, blobs: BlobFileStore, clock: Any, ttl: timedelta) -> FileRecord:
    blob = blobs.put(io.BytesIO(b"data"), 100)
    return FileRecord(
        code=code,
        storage_key=blob.storage_key,
        original_name="a.bin",
        mime_type="application/octet-stream",
        size_bytes=blob.size_bytes,
        created_at=clock.now,
        expires_at=clock.now + ttl,
    )


def test_sweep_removes_expired_records_and_blobs(tmp_path: Path, clock: Any) -> None:
    texts, files, blobs, sweeper = _setup(tmp_path, clock)
    texts.insert(
        TextRecord(
            code="OLD111",
            content="x",
            created_at=clock.now,
            expires_at=clock.now - timedelta(seconds=1),
        )
    )
    expired = _file_record("OLD222", blobs, clock, timedelta(seconds=-1))
    live = _file_record("NEW222", blobs, clock, timedelta(minutes=30))
    files.insert(expired)
    files.insert(live)

    report = sweeper.sweep_once()

    assert report.texts_removed == 1
    assert report.files_removed == 1
    assert report.blob_failures == 0
    assert len(texts) == 0
    assert files.codes() == ["NEW222"]
    assert not blobs.exists(expired.storage_key)
    assert blobs.exists(live.storage_key)


def test_blob_delete_failure_does_not_abort_sweep(
    tmp_path: Path, clock: Any, monkeypatch: MonkeyPatch
) -> None:
    _texts, files, blobs, sweeper = _setup(tmp_path, clock)
    locked = _file_record("LOCK01", blobs, clock, timedelta(seconds=-5))
    other = _file_record("FREE01", blobs, clock, timedelta(seconds=-5))
    files.insert(locked)
    files.insert(other)

    real_delete = blobs.delete

    def flaky_delete(storage_key: str) -> bool:
        if storage_key == locked.storage_key:
            raise PermissionError("locked")
        return real_delete(storage_key)

    monkeypatch.setattr(blobs, "delete", flaky_delete)

    report = sweeper.sweep_once()
    assert report.files_removed == 2
    assert report.blob_failures == 1
    assert len(files) == 0
    assert not blobs.exists(other.storage_key)


def test_background_loop_sweeps_and_stops(tmp_path: Path, clock: Any) -> None:
    texts, _files, _blobs, sweeper = _setup(tmp_path, clock)
    texts.insert(
        TextRecord(
            code="OLD111",
            content="x",
            created_at=clock.now,
            expires_at=clock.now - timedelta(seconds=1),
        )
    )

    async def scenario() -> None:
        await sweeper.start()
        assert sweeper.running
        for _ in range(100):
            if len(texts) == 0:
                break
            await asyncio.sleep(0.01)
        await sweeper.stop()

    asyncio.run(scenario())
    assert len(texts) == 0
    assert not sweeper.running


def test_failing_tick_does_not_stop_the_loop(
    tmp_path: Path, clock: Any, monkeypatch: MonkeyPatch
) -> None:
    _texts, _files, _blobs, sweeper = _setup(tmp_path, clock)
    calls: list[int] = []

    def sweep_once(now: Any = None) -> None:
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")

    monkeypatch.setattr(sweeper, "sweep_once", sweep_once)

    async def scenario() -> None:
        await sweeper.start()
        for _ in range(100):
            if len(calls) >= 3:
                break
            await asyncio.sleep(0.01)
        await sweeper.stop()

    asyncio.run(scenario())
    assert len(calls) >= 3
