from __future__ import annotations

import asyncio
from collections.abc import Iterator
from typing import BinaryIO
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from src.api.deps import get_share_service
from src.models.errors import NoFileError
from src.models.records import to_epoch_ms
from src.share.share_handler import ShareService
from src.utils.file_store import CHUNK_SIZE

router = APIRouter(prefix="/api/share")


class ShareFileResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: str
    expires_at: int = Field(alias="expiresAt")
    original_name: str = Field(alias="originalName")


class FileInfoResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    original_name: str = Field(alias="originalName")
    mime_type: str = Field(alias="mimeType")
    size: int
    expires_at: int = Field(alias="expiresAt")


def _content_disposition(filename: str) -> str:
    quoted = quote(filename)
    if quoted != filename:
        return f"attachment; filename*=utf-8''{quoted}"
    return f'attachment; filename="{filename}"'


def _iter_blob(stream: BinaryIO) -> Iterator[bytes]:
    try:
        while True:
            chunk = stream.read(CHUNK_SIZE)
            if not chunk:
                break
            yield chunk
    finally:
        stream.close()


@router.post("/file", response_model=ShareFileResponse)
async def share_file(
    file: UploadFile | None = File(default=None),
    service: ShareService = Depends(get_share_service),
) -> ShareFileResponse:
    """Upload a file and share it under a short code.

    Args:
        file: Multipart ``file`` field.

    Returns:
        The code, its expiry in epoch milliseconds and the stored file name.
    """

    if file is None:
        raise NoFileError()
    try:
        record = await asyncio.to_thread(
            service.share_file, file.file, file.filename, file.content_type
        )
    finally:
        await file.close()
    return ShareFileResponse(
        code=record.code,
        expires_at=to_epoch_ms(record.expires_at),
        original_name=record.original_name,
    )


@router.get("/file/{code}")
def download_file(
    code: str,
    service: ShareService = Depends(get_share_service),
) -> StreamingResponse:
    """Download a shared file as an attachment.

    The blob is opened before the response starts, so a concurrent expiry
    cannot cut a started download short.
    """

    download = service.retrieve_file_bytes(code)
    record = download.record
    return StreamingResponse(
        _iter_blob(download.stream),
        media_type=record.mime_type,
        headers={
            "Content-Disposition": _content_disposition(record.original_name),
            "Content-Length": str(record.size_bytes),
        },
    )


@router.get("/file/{code}/info", response_model=FileInfoResponse)
def get_file_info(
    code: str,
    service: ShareService = Depends(get_share_service),
) -> FileInfoResponse:
    """Get metadata of a shared file."""

    record = service.retrieve_file_info(code)
    return FileInfoResponse(
        original_name=record.original_name,
        mime_type=record.mime_type,
        size=record.size_bytes,
        expires_at=to_epoch_ms(record.expires_at),
    )
