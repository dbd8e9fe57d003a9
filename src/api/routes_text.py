from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from src.api.deps import get_share_service
from src.models.records import to_epoch_ms
from src.share.share_handler import ShareService

router = APIRouter(prefix="/api/share")


class ShareTextBody(BaseModel):
    text: str | None = None


class ShareTextResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: str
    expires_at: int = Field(alias="expiresAt")


class TextResponse(BaseModel):
    text: str


@router.post("/text", response_model=ShareTextResponse)
async def share_text(
    body: ShareTextBody,
    service: ShareService = Depends(get_share_service),
) -> ShareTextResponse:
    """Share a piece of text.

    Args:
        body: Text payload.

    Returns:
        The code and its expiry in epoch milliseconds.
    """

    record = service.share_text(body.text)
    return ShareTextResponse(code=record.code, expires_at=to_epoch_ms(record.expires_at))


@router.get("/text/{code}", response_model=TextResponse)
async def get_text(
    code: str,
    service: ShareService = Depends(get_share_service),
) -> TextResponse:
    """Fetch shared text by code (case-insensitive)."""

    return TextResponse(text=service.retrieve_text(code))
