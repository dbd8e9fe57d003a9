from __future__ import annotations

import json
import logging
from typing import Any

from src.models.errors import ShareError

logger = logging.getLogger(__name__)


class _BodyTooLarge(Exception):
    pass


class BodyLimitMiddleware:
    """Cap request bodies per path while they are still being received.

    A declared ``Content-Length`` over the cap is refused before any byte is
    read. Otherwise the body is counted as it arrives and reading stops at the
    first chunk past the cap; whatever response the app produces after that is
    replaced by the error's JSON response.
    """

    def __init__(self, app: Any, limits: dict[str, tuple[int, type[ShareError]]]) -> None:
        self._app = app
        self._limits = limits

    async def __call__(self, scope: Any, receive: Any, send: Any) -> None:
        limit = None
        if scope["type"] == "http" and scope["method"] == "POST":
            limit = self._limits.get(scope["path"].rstrip("/"))
        if limit is None:
            await self._app(scope, receive, send)
            return
        max_bytes, error = limit

        declared = _content_length(scope)
        if declared is not None and declared > max_bytes:
            logger.info("Refused %s: Content-Length %d > %d", scope["path"], declared, max_bytes)
            await _send_error(send, error)
            return

        received = 0
        exceeded = False
        replied = False

        async def limited_receive() -> Any:
            nonlocal received, exceeded
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > max_bytes:
                    exceeded = True
                    raise _BodyTooLarge()
            return message

        async def guarded_send(message: Any) -> None:
            nonlocal replied
            if not exceeded:
                await send(message)
                return
            if not replied:
                replied = True
                await _send_error(send, error)

        try:
            await self._app(scope, limited_receive, guarded_send)
        except _BodyTooLarge:
            pass
        if exceeded:
            logger.info("Aborted %s after %d bytes (limit %d)", scope["path"], received, max_bytes)
            if not replied:
                await _send_error(send, error)


def _content_length(scope: Any) -> int | None:
    for name, value in scope.get("headers", []):
        if name == b"content-length":
            try:
                return int(value)
            except ValueError:
                return None
    return None


async def _send_error(send: Any, error: type[ShareError]) -> None:
    body = json.dumps({"error": error.message}).encode("utf-8")
    await send(
        {
            "type": "http.response.start",
            "status": error.status_code,
            "headers": [
                (b"content-type", b"application/json"),
                (b"content-length", str(len(body)).encode("ascii")),
                (b"connection", b"close"),
            ],
        }
    )
    await send({"type": "http.response.body", "body": body})
