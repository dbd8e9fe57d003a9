from __future__ import annotations

import logging
import ntpath
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO

from src.config.schema import ShareSettings
from src.models.errors import (
    BlobMissingError,
    EmptyInputError,
    NoFileError,
    NotFoundError,
    TextTooLargeError,
)
from src.models.records import FileRecord, TextRecord, utcnow
from src.share.sweeper import EvictionSweeper, SweepReport
from src.utils.codes import CodeGenerator
from src.utils.expiring_store import ExpiringStore
from src.utils.file_store import BlobFileStore
from src.utils.storage_paths import resolve_uploads_dir

logger = logging.getLogger(__name__)

DEFAULT_FILE_NAME = "file"
DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass
class FileDownload:
    record: FileRecord
    stream: BinaryIO


@dataclass(frozen=True)
class ShareStats:
    texts: int
    files: int


def _clean_file_name(declared_name: str | None) -> str:
    # ntpath splits on both separators, whatever the client platform
    name = ntpath.basename((declared_name or "").strip())
    name = "".join(ch for ch in name if ch.isprintable())
    return name or DEFAULT_FILE_NAME


class ShareService:
    """Text and file sharing on top of two expiring stores and a blob directory."""

    def __init__(
        self,
        settings: ShareSettings,
        blobs: BlobFileStore,
        clock: Callable[[], datetime] = utcnow,
        codes: CodeGenerator | None = None,
    ) -> None:
        self._settings = settings
        self._blobs = blobs
        self._clock = clock
        self._codes = codes or CodeGenerator(
            alphabet=settings.code_alphabet,
            length=settings.code_length,
            max_attempts=settings.max_code_attempts,
        )
        self._texts: ExpiringStore[TextRecord] = ExpiringStore("texts", clock=clock)
        self._files: ExpiringStore[FileRecord] = ExpiringStore(
            "files", clock=clock, on_evict=self._release_blob
        )
        self._sweeper = EvictionSweeper(
            self._texts,
            self._files,
            blobs,
            interval=settings.sweep_interval_seconds,
            clock=clock,
        )
        self._open = False
        # held while publishing and while closing; a closed service never gains records
        self._lifecycle = threading.Lock()

    @classmethod
    def from_settings(cls, settings: ShareSettings) -> ShareService:
        blobs = BlobFileStore(resolve_uploads_dir(settings.storage_dir))
        return cls(settings=settings, blobs=blobs)

    @property
    def settings(self) -> ShareSettings:
        return self._settings

    @property
    def blobs(self) -> BlobFileStore:
        return self._blobs

    @property
    def sweeper(self) -> EvictionSweeper:
        return self._sweeper

    @property
    def is_open(self) -> bool:
        return self._open

    # lifecycle

    def open(self) -> ShareService:
        with self._lifecycle:
            if self._open:
                return self
            self._blobs.open()
            self._open = True
        logger.info("Share service opened (uploads in %s)", self._blobs.base_dir)
        return self

    def close(self) -> None:
        with self._lifecycle:
            if not self._open:
                return
            self._open = False
            self._texts.clear()
            released = self._files.clear()
        for record in released:
            self._release_blob(record)
        logger.info("Share service closed")

    def __enter__(self) -> ShareService:
        return self.open()

    def __exit__(self, *exc: object) -> None:
        self.close()

    async def start(self) -> None:
        self.open()
        await self._sweeper.start()

    async def stop(self) -> None:
        await self._sweeper.stop()
        self.close()

    # text

    def share_text(self, content: str | None) -> TextRecord:
        self._ensure_open()
        if content is None or not content.strip():
            raise EmptyInputError()
        if len(content.encode("utf-8")) > self._settings.max_text_bytes:
            raise TextTooLargeError(self._settings.max_text_bytes)
        now = self._clock()
        with self._lifecycle:
            self._ensure_open()
            record = self._texts.publish(
                lambda code: TextRecord(
                    code=code,
                    content=content,
                    created_at=now,
                    expires_at=now + self._settings.ttl,
                ),
                self._codes,
            )
        logger.info("Shared text %s (%d chars)", record.code, len(content))
        return record

    def retrieve_text(self, code: str) -> str:
        self._ensure_open()
        record = self._texts.get(code)
        if record is None:
            raise NotFoundError()
        return record.content

    def delete_text(self, code: str) -> bool:
        self._ensure_open()
        return self._texts.delete(code)

    # files

    def share_file(
        self,
        fileobj: BinaryIO | None,
        declared_name: str | None,
        mime_type: str | None = None,
    ) -> FileRecord:
        """Store an upload and publish it under a fresh code.

        The blob is fully written before the record becomes visible.

        Raises:
            NoFileError: No stream, or the stream was empty.
            PayloadTooLargeError: The stream exceeded ``max_upload_bytes``.
            RuntimeError: The service closed before the upload was published.
        """

        self._ensure_open()
        if fileobj is None:
            raise NoFileError()
        original_name = _clean_file_name(declared_name)
        blob = self._blobs.put(fileobj, self._settings.max_upload_bytes, original_name)
        if blob.size_bytes == 0:
            self._blobs.delete(blob.storage_key)
            raise NoFileError()

        now = self._clock()
        try:
            with self._lifecycle:
                self._ensure_open()
                record = self._files.publish(
                    lambda code: FileRecord(
                        code=code,
                        storage_key=blob.storage_key,
                        original_name=original_name,
                        mime_type=mime_type or DEFAULT_MIME_TYPE,
                        size_bytes=blob.size_bytes,
                        created_at=now,
                        expires_at=now + self._settings.ttl,
                    ),
                    self._codes,
                )
        except Exception:
            self._blobs.delete(blob.storage_key)
            raise
        logger.info(
            "Shared file %s (%s, %d bytes)", record.code, original_name, record.size_bytes
        )
        return record

    def retrieve_file_info(self, code: str) -> FileRecord:
        record = self._live_file(code)
        if not self._blobs.exists(record.storage_key):
            raise self._heal_missing_blob(record)
        return record

    def retrieve_file_bytes(self, code: str) -> FileDownload:
        """Open the blob behind ``code``.

        The caller owns the returned stream and must close it.
        """

        record = self._live_file(code)
        try:
            stream = self._blobs.get(record.storage_key)
        except BlobMissingError as e:
            raise self._heal_missing_blob(record) from e
        return FileDownload(record=record, stream=stream)

    def delete_file(self, code: str) -> bool:
        self._ensure_open()
        record = self._files.pop(code)
        if record is None:
            return False
        self._release_blob(record)
        return True

    # maintenance

    def sweep(self, now: datetime | None = None) -> SweepReport:
        return self._sweeper.sweep_once(now)

    def stats(self) -> ShareStats:
        now = self._clock()
        return ShareStats(texts=self._texts.live_count(now), files=self._files.live_count(now))

    def _live_file(self, code: str) -> FileRecord:
        self._ensure_open()
        record = self._files.get(code)
        if record is None:
            raise NotFoundError()
        return record

    def _heal_missing_blob(self, record: FileRecord) -> NotFoundError:
        if not self._files.discard(record):
            # removed concurrently, e.g. by the sweeper; an ordinary miss
            return NotFoundError()
        logger.warning(
            "Integrity anomaly: blob %s for live file %s is missing; record removed",
            record.storage_key,
            record.code,
        )
        return BlobMissingError(record.storage_key)

    def _release_blob(self, record: FileRecord) -> None:
        try:
            self._blobs.delete(record.storage_key)
        except OSError as e:
            logger.warning("Could not delete blob %s for %s: %s", record.storage_key, record.code, e)

    def _ensure_open(self) -> None:
        if not self._open:
            raise RuntimeError("share service is not open")
