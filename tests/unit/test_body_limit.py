from __future__ import annotations

import asyncio
import json
from typing import Any

from src.api.body_limit import BodyLimitMiddleware
from src.models.errors import PayloadTooLargeError


def _scope(path: str = "/api/share/file", headers: list | None = None) -> dict[str, Any]:
    return {"type": "http", "method": "POST", "path": path, "headers": headers or []}


class _ChunkedBody:
    def __init__(self, chunk: bytes, count: int) -> None:
        self.chunk = chunk
        self.remaining = count
        self.delivered = 0

    async def __call__(self) -> dict[str, Any]:
        self.remaining -= 1
        self.delivered += len(self.chunk)
        return {"type": "http.request", "body": self.chunk, "more_body": self.remaining > 0}


async def _drain_app(scope: Any, receive: Any, send: Any) -> None:
    while True:
        message = await receive()
        if not message.get("more_body"):
            break
    await send({"type": "http.response.start", "status": 200, "headers": []})
    await send({"type": "http.response.body", "body": b"ok"})


def _run(middleware: BodyLimitMiddleware, scope: dict, receive: Any) -> list[dict]:
    sent: list[dict] = []

    async def send(message: dict) -> None:
        sent.append(message)

    asyncio.run(middleware(scope, receive, send))
    return sent


def test_streamed_body_stops_at_the_limit() -> None:
    middleware = BodyLimitMiddleware(_drain_app, {"/api/share/file": (1024, PayloadTooLargeError)})
    body = _ChunkedBody(b"x" * 256, count=20_000)

    sent = _run(middleware, _scope(), body)

    assert body.delivered <= 1024 + 256
    assert sent[0]["status"] == 413
    assert json.loads(sent[1]["body"]) == {"error": "file too large"}
    assert len(sent) == 2


def test_declared_length_over_limit_reads_nothing() -> None:
    middleware = BodyLimitMiddleware(_drain_app, {"/api/share/file": (1024, PayloadTooLargeError)})
    body = _ChunkedBody(b"x" * 256, count=4)

    sent = _run(middleware, _scope(headers=[(b"content-length", b"5242880")]), body)

    assert body.delivered == 0
    assert sent[0]["status"] == 413


def test_bodies_within_limit_and_other_paths_pass_through() -> None:
    middleware = BodyLimitMiddleware(_drain_app, {"/api/share/file": (1024, PayloadTooLargeError)})

    small = _run(middleware, _scope(path="/api/share/file/"), _ChunkedBody(b"x" * 256, count=4))
    other = _run(middleware, _scope(path="/api/other"), _ChunkedBody(b"x" * 256, count=20))

    assert small[0]["status"] == 200
    assert other[0]["status"] == 200
