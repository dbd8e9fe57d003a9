from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.requests import Request

from src.models.errors import ShareError

logger = logging.getLogger(__name__)

INVALID_REQUEST_MESSAGE = "invalid request"


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ShareError)
    async def _share_error_handler(request: Request, exc: ShareError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.debug("%s %s rejected: %s", request.method, request.url.path, exc.errors())
        return JSONResponse(status_code=400, content={"error": INVALID_REQUEST_MESSAGE})

    @app.exception_handler(ValueError)
    async def _value_error_handler(_request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": str(exc)})
