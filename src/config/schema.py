from __future__ import annotations

from datetime import timedelta

from pydantic import BaseModel, Field

DEFAULT_CODE_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


class ShareSettings(BaseModel):
    ttl_seconds: int = Field(default=30 * 60, gt=0)
    sweep_interval_seconds: float = Field(default=60.0, gt=0)
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    max_text_bytes: int = Field(default=100 * 1024, gt=0)
    code_length: int = Field(default=6, ge=4, le=32)
    code_alphabet: str = Field(default=DEFAULT_CODE_ALPHABET, min_length=2)
    max_code_attempts: int = Field(default=1000, gt=0)
    storage_dir: str | None = None

    @property
    def ttl(self) -> timedelta:
        return timedelta(seconds=self.ttl_seconds)


class ServerSettings(BaseModel):
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    log_level: str = "INFO"


class AppConfig(BaseModel):
    share: ShareSettings = Field(default_factory=ShareSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
