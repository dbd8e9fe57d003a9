from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from src.config.schema import ShareSettings
from src.share.share_handler import ShareService
from src.utils.file_store import BlobFileStore


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> ShareSettings:
    return ShareSettings(max_upload_bytes=1024)


@pytest.fixture
def uploads_dir(tmp_path: Path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture
def service(uploads_dir: Path, settings: ShareSettings, clock: FakeClock) -> Iterator[ShareService]:
    svc = ShareService(settings=settings, blobs=BlobFileStore(uploads_dir), clock=clock)
    with svc:
        yield svc
