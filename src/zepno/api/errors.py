"""Maps domain exceptions to JSON error responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from zepno.api.schemas import ErrorResponse
from zepno.errors import ZepnoError

logger = logging.getLogger(__name__)


def add_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with the FastAPI app."""

    @app.exception_handler(ZepnoError)
    async def zepno_exception_handler(request: Request, exc: ZepnoError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(error=exc.message, code=exc.code).model_dump(),
        )
