from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from src.models.records import FileRecord, TextRecord, utcnow
from src.utils.expiring_store import ExpiringStore
from src.utils.file_store import BlobFileStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepReport:
    texts_removed: int = 0
    files_removed: int = 0
    blob_failures: int = 0


class EvictionSweeper:
    """Periodically drop expired records and release the blobs behind them.

    Records are unpublished before their blobs are deleted, so a reader either
    finds nothing or a record whose blob still exists. A blob that cannot be
    deleted is logged and skipped; the rest of the sweep carries on.
    """

    def __init__(
        self,
        texts: ExpiringStore[TextRecord],
        files: ExpiringStore[FileRecord],
        blobs: BlobFileStore,
        interval: float = 60.0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._texts = texts
        self._files = files
        self._blobs = blobs
        self._interval = interval
        self._clock = clock
        self._task: asyncio.Task[None] | None = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sweep_once(self, now: datetime | None = None) -> SweepReport:
        now_ = now or self._clock()
        texts = self._texts.sweep_expired(now_)
        files = self._files.sweep_expired(now_)

        failures = 0
        for record in files:
            try:
                self._blobs.delete(record.storage_key)
            except Exception as e:
                failures += 1
                logger.warning(
                    "Could not delete blob %s for expired file %s: %s",
                    record.storage_key,
                    record.code,
                    e,
                )

        report = SweepReport(
            texts_removed=len(texts),
            files_removed=len(files),
            blob_failures=failures,
        )
        if texts or files:
            logger.info(
                "Sweep removed %d text(s), %d file(s), %d blob failure(s)",
                report.texts_removed,
                report.files_removed,
                report.blob_failures,
            )
        return report

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="eviction-sweeper")
        logger.info("Eviction sweeper started (every %.0fs)", self._interval)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Eviction sweeper stopped")

    async def _run(self) -> None:
        while True:
            started = time.monotonic()
            try:
                await asyncio.to_thread(self.sweep_once)
            except Exception:
                logger.exception("Sweep tick failed")
            elapsed = time.monotonic() - started
            await asyncio.sleep(max(0.0, self._interval - elapsed))
