"""API controller for HTTP chat requests.

``POST /chat`` answers either with one JSON response or, when the body
asks for ``stream``, with a Server-Sent-Events stream.  All endpoints
defined here are registered in ``main.py``.
"""

import json

from fastapi import APIRouter, Depends, Request, Response, status
from loguru import logger

from ..models.chat_message import ChatMessage
from ..models.chat_response import ChatResponse, ErrorResponse
from ..models.enums import MessageRole
from ..models.identity import CallerIdentity
from ..services.chat_service import ChatService, get_chat_service
from ..services.identity_service import get_current_identity
from ..transports.push_stream import EventStreamResponse
from ..utils.error_handler import ValidationError

router = APIRouter(prefix="", tags=["Chat"])


@router.options("/chat", status_code=status.HTTP_204_NO_CONTENT)
async def chat_preflight_endpoint() -> Response:
    """Answer CORS preflight requests with an empty success response."""
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/chat",
    response_model=ChatResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def chat_endpoint(
    request: Request,
    identity: CallerIdentity = Depends(get_current_identity),
    service: ChatService = Depends(get_chat_service),
) -> Response | ChatResponse:
    """Accept a conversation and return the assistant's answer.

    The body is validated before anything is sent, so a malformed request
    always gets a JSON error with status 400.  Streaming answers are sent
    as ``data: {"content": ...}`` events and end with ``data: [DONE]``, or
    with a single ``data: {"error": ...}`` event if generation fails.
    """
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValidationError("Validation error: request body must be valid JSON") from exc

    logger.debug("Chat request from user={}", identity.user_id)
    controller = service.open_session(identity, payload)

    if controller.request.stream:
        return EventStreamResponse(controller.stream_to)

    answer = await controller.complete()
    return ChatResponse(message=ChatMessage(role=MessageRole.ASSISTANT, content=answer))
