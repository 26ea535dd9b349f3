"""WebSocket controller for streaming chat.

Clients authenticate with a ``token`` query parameter while connecting and
may then send any number of ``{"messages": [...]}`` frames, as text or as
UTF-8 encoded binary.  Each frame is one chat session, answered with
``chunk`` frames followed by a ``done`` frame (or one ``error`` frame).
Frames are handled one after another in arrival order.
"""

import asyncio
import json
from contextlib import suppress

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from loguru import logger

from ..models.identity import CallerIdentity
from ..services.chat_service import ChatService, get_chat_service
from ..services.identity_service import IdentityVerifier, get_identity_verifier
from ..transports.socket_sink import SocketSink
from ..utils.error_handler import InvalidCredential, PeerDisconnected, ValidationError

router = APIRouter(prefix="", tags=["Chat"])


@router.websocket("/chat/stream")
async def chat_socket_endpoint(
    websocket: WebSocket,
    token: str | None = Query(default=None),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
    service: ChatService = Depends(get_chat_service),
) -> None:
    """Authenticate the connection, then serve chat frames until it closes."""
    # A 1008 close frame only reaches the client on an accepted socket
    await websocket.accept()
    try:
        identity = verifier.verify(token)
    except InvalidCredential as exc:
        logger.warning("Rejected chat socket: {}", exc)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=str(exc))
        return

    logger.info("Chat socket opened for user={}", identity.user_id)

    inbound: asyncio.Queue[str | bytes | None] = asyncio.Queue()
    connection_closed = asyncio.Event()
    reader = asyncio.create_task(_read_frames(websocket, inbound, connection_closed))
    try:
        while True:
            raw = await inbound.get()
            if raw is None:
                break
            await _handle_frame(websocket, raw, identity, service, connection_closed)
    except WebSocketDisconnect:
        connection_closed.set()
    finally:
        reader.cancel()
        with suppress(asyncio.CancelledError):
            await reader
        logger.info("Chat socket closed for user={}", identity.user_id)


async def _read_frames(
    websocket: WebSocket,
    inbound: "asyncio.Queue[str | bytes | None]",
    connection_closed: asyncio.Event,
) -> None:
    """Queue inbound text and binary frames; flag the connection once the client leaves."""
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            if message.get("text") is not None:
                inbound.put_nowait(message["text"])
            elif message.get("bytes") is not None:
                inbound.put_nowait(message["bytes"])
    except WebSocketDisconnect:
        pass
    finally:
        connection_closed.set()
        inbound.put_nowait(None)


async def _send_error_frame(
    websocket: WebSocket,
    message: str,
    connection_closed: asyncio.Event,
) -> None:
    """Answer a frame that never became a session with one ``error`` frame."""
    try:
        await SocketSink(websocket, connection_closed).send_error(message)
    except PeerDisconnected:
        logger.debug("Error frame not delivered: client gone")


async def _handle_frame(
    websocket: WebSocket,
    raw: str | bytes,
    identity: CallerIdentity,
    service: ChatService,
    connection_closed: asyncio.Event,
) -> None:
    try:
        text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        payload = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError):
        await _send_error_frame(websocket, "Invalid JSON payload", connection_closed)
        return

    if isinstance(payload, dict):
        # Sockets only ever stream
        payload = {**payload, "stream": True}

    try:
        controller = service.open_session(identity, payload)
    except ValidationError as exc:
        await _send_error_frame(websocket, str(exc), connection_closed)
        return

    await controller.stream_to(SocketSink(websocket, connection_closed))
