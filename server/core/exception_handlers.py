"""Translates the error taxonomy into HTTP responses.

Client errors carry their message. Upstream and internal failures return a
generic message so provider bodies, URLs and keys never reach the client.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from shared.exceptions.errors import (
    ExternalServiceError,
    InvalidArgumentError,
    NotFoundError,
    PayloadTooLargeError,
    RAGError,
)

EXTERNAL_FAILURE_MESSAGE = "Processing failed because an upstream service is unavailable, please retry later."
INTERNAL_FAILURE_MESSAGE = "Internal server error, please retry later."


def _get_logger(request: Request):
    return getattr(request.app.state, "logging", None) or logging.getLogger(__name__)


async def handle_payload_too_large(request: Request, exc: PayloadTooLargeError) -> JSONResponse:
    return JSONResponse(status_code=413, content={"detail": str(exc)})


async def handle_invalid_argument(request: Request, exc: InvalidArgumentError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def handle_not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def handle_external_service(request: Request, exc: ExternalServiceError) -> JSONResponse:
    _get_logger(request).error(
        "%s %s failed in %s backend (status=%s, attempts=%s): %s",
        request.method, request.url.path, exc.service, exc.status_code, exc.attempts, exc,
    )
    return JSONResponse(status_code=502, content={"detail": EXTERNAL_FAILURE_MESSAGE})


async def handle_rag_error(request: Request, exc: RAGError) -> JSONResponse:
    _get_logger(request).error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": INTERNAL_FAILURE_MESSAGE})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PayloadTooLargeError, handle_payload_too_large)
    app.add_exception_handler(InvalidArgumentError, handle_invalid_argument)
    app.add_exception_handler(NotFoundError, handle_not_found)
    app.add_exception_handler(ExternalServiceError, handle_external_service)
    app.add_exception_handler(RAGError, handle_rag_error)
