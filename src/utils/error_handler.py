"""Error handling utilities and custom exceptions."""

from __future__ import annotations

from fastapi import Request, status
from fastapi.responses import JSONResponse
from loguru import logger

from ..models.chat_response import ErrorResponse


class ChatError(Exception):
    """Exception raised when a chat operation fails.

    Subclasses carry the HTTP status and error category used when the
    failure is reported before any part of the response was sent.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_type: str = "chat"


class ValidationError(ChatError):
    """The request body does not describe a valid chat request."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_type = "validation"


class InvalidCredential(ChatError):
    """The bearer token is missing, malformed, badly signed or expired."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error_type = "auth"


class UpstreamFailure(ChatError):
    """The language model failed to produce or continue a generation."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_type = "upstream"


class PeerDisconnected(ChatError):
    """The client went away while its session was still running.

    This is a cancellation signal rather than a failure; nobody is left to
    receive a report, so it is never turned into a response.
    """

    status_code = 499
    error_type = "disconnect"


async def chat_error_handler(request: Request, exc: ChatError) -> JSONResponse:
    """Convert a ChatError into a structured JSON error response."""
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("{} on {} {}: {}", type(exc).__name__, request.method, request.url.path, exc)
    else:
        logger.warning("{} on {} {}: {}", type(exc).__name__, request.method, request.url.path, exc)
    body = ErrorResponse(error=str(exc), error_type=exc.error_type)
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(),
    )
