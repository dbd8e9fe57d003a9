from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol

from pydantic import BaseModel, ConfigDict


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_epoch_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


class Expiring(Protocol):
    @property
    def code(self) -> str: ...

    @property
    def expires_at(self) -> datetime: ...


class TextRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    content: str
    created_at: datetime
    expires_at: datetime


class FileRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    storage_key: str
    original_name: str
    mime_type: str
    size_bytes: int
    created_at: datetime
    expires_at: datetime
