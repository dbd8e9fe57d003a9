from __future__ import annotations

from starlette.requests import Request

from src.share.share_handler import ShareService


def get_share_service(request: Request) -> ShareService:
    return request.app.state.share_service
