"""Server-Sent-Events sink written directly against the ASGI interface.

The status line and headers go out once, when the sink is opened.  From
then on the response can only grow by ``data:`` events, so failures are
reported as an error event instead of a different status code.
"""

from __future__ import annotations

import asyncio
import json
from contextlib import suppress
from typing import Any, Awaitable, Callable, Mapping

from loguru import logger
from starlette.responses import Response
from starlette.types import Message, Receive, Scope, Send

from ..models.chat_message import Fragment
from ..utils.error_handler import PeerDisconnected
from .base import TransportSink

DONE_SENTINEL = "[DONE]"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class PushStreamSink(TransportSink):
    """Sink writing one ``data:`` event per message to an HTTP response."""

    def __init__(
        self,
        send: Send,
        receive: Receive,
        status_code: int = 200,
        raw_headers: list[tuple[bytes, bytes]] | None = None,
    ) -> None:
        super().__init__()
        self._send = send
        self._receive = receive
        self._status_code = status_code
        self._raw_headers = raw_headers or []
        self._opened = False
        self._body_ended = False
        self._peer_gone = False
        self._watcher: asyncio.Task | None = None

    @property
    def opened(self) -> bool:
        return self._opened

    async def open(self) -> None:
        if self._opened:
            raise RuntimeError("Push stream response has already been started")
        self._opened = True
        await self._transmit(
            {
                "type": "http.response.start",
                "status": self._status_code,
                "headers": self._raw_headers,
            }
        )
        self._watcher = asyncio.create_task(self._watch_disconnect())

    def is_peer_gone(self) -> bool:
        return self._peer_gone

    async def release(self) -> None:
        """Stop watching the connection and finish the body if still open.

        No event is written here, so a session cancelled because its client
        left simply ends.
        """
        if self._watcher is not None:
            self._watcher.cancel()
            with suppress(asyncio.CancelledError):
                await self._watcher
            self._watcher = None
        if not self._opened or self._body_ended or self._peer_gone:
            return
        try:
            await self._transmit({"type": "http.response.body", "body": b"", "more_body": False})
        except PeerDisconnected:
            logger.debug("Client left before the push stream was finished")
        self._body_ended = True

    async def _watch_disconnect(self) -> None:
        while True:
            message = await self._receive()
            if message["type"] == "http.disconnect":
                self._peer_gone = True
                return

    async def _write_fragment(self, fragment: Fragment) -> None:
        await self._write_event(json.dumps({"content": fragment.text}, ensure_ascii=False))

    async def _write_error(self, message: str) -> None:
        await self._write_event(json.dumps({"error": message}, ensure_ascii=False), final=True)

    async def _write_done(self) -> None:
        await self._write_event(DONE_SENTINEL, final=True)

    async def _write_event(self, data: str, final: bool = False) -> None:
        await self._transmit(
            {
                "type": "http.response.body",
                "body": f"data: {data}\n\n".encode("utf-8"),
                "more_body": not final,
            }
        )
        if final:
            self._body_ended = True

    async def _transmit(self, message: Message) -> None:
        try:
            await self._send(message)
        except OSError as exc:
            self._peer_gone = True
            raise PeerDisconnected("Client disconnected from push stream") from exc


class EventStreamResponse(Response):
    """Response whose body is produced by relaying into a :class:`PushStreamSink`.

    ``relay`` receives the sink and is responsible for opening it; the
    response only guarantees the sink is released afterwards.
    """

    media_type = "text/event-stream"

    def __init__(
        self,
        relay: Callable[[PushStreamSink], Awaitable[Any]],
        status_code: int = 200,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self.relay = relay
        self.status_code = status_code
        self.background = None
        self.init_headers({**SSE_HEADERS, **(headers or {})})

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        sink = PushStreamSink(
            send,
            receive,
            status_code=self.status_code,
            raw_headers=self.raw_headers,
        )
        try:
            await self.relay(sink)
        finally:
            await sink.release()
