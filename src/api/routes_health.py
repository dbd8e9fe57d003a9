from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from src.api.deps import get_share_service
from src.share.share_handler import ShareService

router = APIRouter(prefix="/api")


class HealthResponse(BaseModel):
    status: str
    texts: int
    files: int


@router.get("/health", response_model=HealthResponse)
async def health(service: ShareService = Depends(get_share_service)) -> HealthResponse:
    stats = service.stats()
    return HealthResponse(status="ok", texts=stats.texts, files=stats.files)
