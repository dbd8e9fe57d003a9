from __future__ import annotations

import logging
import os
import re
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from src.models.errors import BlobMissingError, PayloadTooLargeError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
PART_SUFFIX = ".part"

_KEY_RE = re.compile(r"^[0-9a-f]{32}(\.[A-Za-z0-9]{1,16})?$")
_EXT_RE = re.compile(r"^\.[A-Za-z0-9]{1,16}$")


@dataclass(frozen=True)
class StoredBlob:
    storage_key: str
    size_bytes: int


def _new_storage_key(declared_name: str | None) -> str:
    ext = os.path.splitext(declared_name or "")[1]
    if not _EXT_RE.match(ext):
        ext = ""
    return f"{uuid.uuid4().hex}{ext.lower()}"


class BlobFileStore:
    """Flat directory of uploaded artifacts addressed by generated storage keys.

    Keys are random (``uuid4``) and never derived from user input beyond a
    sanitized extension, so they cannot collide with or escape ``base_dir``.
    """

    def __init__(self, base_dir: Path) -> None:
        self._base_dir = base_dir

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def open(self) -> int:
        """Create the directory and drop blobs left behind by an earlier process.

        Records never survive a restart, so anything already on disk is orphaned.
        """

        self._base_dir.mkdir(parents=True, exist_ok=True)
        removed = self.purge()
        if removed:
            logger.info("Removed %d orphaned blob(s) from %s", removed, self._base_dir)
        return removed

    def put(
        self,
        fileobj: BinaryIO,
        size_limit: int,
        declared_name: str | None = None,
    ) -> StoredBlob:
        """Stream ``fileobj`` into a new blob.

        The data lands in a ``.part`` file first and is renamed into place only
        once complete, so a rejected or failed upload leaves nothing behind.

        Raises:
            PayloadTooLargeError: More than ``size_limit`` bytes were supplied.
        """

        key = _new_storage_key(declared_name)
        final_path = self._base_dir / key
        part_path = self._base_dir / f"{key}{PART_SUFFIX}"
        written = 0
        try:
            with open(part_path, "wb") as f:
                while True:
                    chunk = fileobj.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > size_limit:
                        raise PayloadTooLargeError(size_limit)
                    f.write(chunk)
            os.replace(part_path, final_path)
        except BaseException:
            part_path.unlink(missing_ok=True)
            raise
        logger.debug("Stored blob %s (%d bytes)", key, written)
        return StoredBlob(storage_key=key, size_bytes=written)

    def path(self, storage_key: str) -> Path:
        if not _KEY_RE.match(storage_key):
            raise BlobMissingError(storage_key)
        return self._base_dir / storage_key

    def exists(self, storage_key: str) -> bool:
        try:
            return self.path(storage_key).is_file()
        except BlobMissingError:
            return False

    def get(self, storage_key: str) -> BinaryIO:
        """Open a blob for reading.

        Raises:
            BlobMissingError: The key is unknown or the file cannot be opened.
        """

        path = self.path(storage_key)
        try:
            return open(path, "rb")
        except OSError as e:
            logger.debug("Blob %s unreadable: %s", storage_key, e)
            raise BlobMissingError(storage_key) from e

    def delete(self, storage_key: str) -> bool:
        try:
            path = self.path(storage_key)
        except BlobMissingError:
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    def keys(self) -> list[str]:
        if not self._base_dir.exists():
            return []
        return sorted(p.name for p in self._base_dir.iterdir() if _KEY_RE.match(p.name))

    def purge(self, keep: Iterable[str] = ()) -> int:
        """Delete every blob and partial upload whose key is not in ``keep``."""

        if not self._base_dir.exists():
            return 0
        keep_ = set(keep)
        removed = 0
        for p in self._base_dir.iterdir():
            name = p.name
            if name.endswith(PART_SUFFIX):
                name = name[: -len(PART_SUFFIX)]
            elif name in keep_:
                continue
            if not _KEY_RE.match(name) or not p.is_file():
                continue
            try:
                p.unlink()
                removed += 1
            except OSError as e:
                logger.warning("Could not remove %s: %s", p, e)
        return removed
