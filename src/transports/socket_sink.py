"""WebSocket sink emitting one JSON frame per message."""

from __future__ import annotations

import asyncio
from typing import Any

from starlette.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from ..models.chat_message import Fragment
from ..utils.error_handler import PeerDisconnected
from .base import TransportSink


class SocketSink(TransportSink):
    """Sink for one chat session carried over an already accepted socket.

    The socket outlives the session: closing the sink only writes the
    ``done`` frame, leaving the connection open for the next request.
    ``connection_closed`` is set by whoever reads from the socket once the
    client disconnects.
    """

    def __init__(self, websocket: WebSocket, connection_closed: asyncio.Event) -> None:
        super().__init__()
        self._websocket = websocket
        self._connection_closed = connection_closed

    async def open(self) -> None:
        return None

    def is_peer_gone(self) -> bool:
        return (
            self._connection_closed.is_set()
            or self._websocket.client_state == WebSocketState.DISCONNECTED
            or self._websocket.application_state == WebSocketState.DISCONNECTED
        )

    async def _write_fragment(self, fragment: Fragment) -> None:
        await self._write_frame({"type": "chunk", "content": fragment.text})

    async def _write_error(self, message: str) -> None:
        await self._write_frame({"error": message})

    async def _write_done(self) -> None:
        await self._write_frame({"type": "done"})

    async def _write_frame(self, payload: dict[str, Any]) -> None:
        try:
            await self._websocket.send_json(payload)
        except (WebSocketDisconnect, OSError) as exc:
            self._connection_closed.set()
            raise PeerDisconnected("Client disconnected from socket") from exc
