"""Orchestration of chat sessions between the caller and the language model.

A :class:`ChatSessionController` drives one request end to end: it
validates the payload, starts the upstream generation and relays every
fragment to a :class:`~src.transports.base.TransportSink`, whichever
transport the request came in on.  It centralises error handling so the
entry points can remain thin.

Errors found before anything was written (a bad payload, an upstream
failure in non-streaming mode) are raised and turned into a status code
by the API layer.  Once the sink has been opened the response is
committed and failures are written into the stream instead.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from ..models.chat_request import ChatRequest
from ..models.chat_session import ChatSession
from ..models.enums import SessionState
from ..models.identity import CallerIdentity
from ..transports.base import TransportSink
from ..utils.error_handler import PeerDisconnected, UpstreamFailure, ValidationError
from .llm_service import LLMService
from .upstream import FragmentStream, UpstreamGenerator


def format_validation_error(exc: PydanticValidationError) -> str:
    """Render pydantic errors as ``Validation error: loc: msg, ...``."""
    details = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "body"
        details.append(f"{location}: {error['msg']}")
    return f"Validation error: {', '.join(details)}"


class ChatSessionController:
    """Runs the state machine of a single chat session.

    The controller is written once against :class:`TransportSink` and does
    not know which transport it is relaying to.  Each controller owns the
    upstream stream it starts and never shares it.
    """

    def __init__(
        self,
        identity: CallerIdentity,
        payload: Any,
        upstream: UpstreamGenerator,
    ) -> None:
        self.session = ChatSession(identity=identity, payload=payload)
        self._upstream = upstream

    @property
    def state(self) -> SessionState:
        return self.session.state

    @property
    def request(self) -> ChatRequest | None:
        return self.session.request

    @property
    def response_committed(self) -> bool:
        return self.session.response_committed

    def validate(self) -> ChatRequest:
        """Parse the inbound payload into a :class:`ChatRequest`.

        Raises
        ------
        ValidationError
            If the payload is malformed or holds no messages.  The session
            is closed and no sink is ever opened.
        """
        session = self.session
        session.transition(SessionState.VALIDATING)
        try:
            session.request = ChatRequest.model_validate(session.payload)
        except PydanticValidationError as exc:
            session.transition(SessionState.FAILED)
            session.transition(SessionState.CLOSED)
            message = format_validation_error(exc)
            logger.info("Session {} rejected: {}", session.session_id, message)
            raise ValidationError(message) from exc

        logger.debug(
            "Session {} validated: user={} messages={} stream={}",
            session.session_id,
            session.identity.user_id,
            len(session.request.messages),
            session.request.stream,
        )
        return session.request

    async def complete(self) -> str:
        """Generate the whole answer without streaming and return its text.

        Raises
        ------
        UpstreamFailure
            If the generation fails.  Nothing has been written yet, so the
            API layer reports it with an error status.
        """
        session = self.session
        request = self._require_validated()
        parts: list[str] = []
        try:
            stream = self._upstream.stream(session.identity, request.messages, streaming=False)
            async for fragment in stream:
                if fragment.text:
                    parts.append(fragment.text)
        except Exception as exc:
            session.transition(SessionState.FAILED)
            session.transition(SessionState.CLOSED)
            if isinstance(exc, UpstreamFailure):
                logger.error("Session {} failed: {}", session.session_id, exc)
                raise
            logger.exception("Session {} failed unexpectedly", session.session_id)
            raise UpstreamFailure("Chat failed") from exc

        session.transition(SessionState.COMPLETED)
        session.transition(SessionState.CLOSED)
        logger.info("Session {} completed ({} fragments)", session.session_id, len(parts))
        return "".join(parts)

    async def stream_to(self, sink: TransportSink) -> ChatSession:
        """Relay the generation to ``sink`` until it ends or the peer leaves.

        Exactly one terminal message (done or error) is written unless the
        client disconnected, in which case nothing more is written and the
        upstream generation is cancelled.
        """
        session = self.session
        request = self._require_validated()
        session.sink = sink

        try:
            await sink.open()
        except PeerDisconnected:
            logger.info("Session {} abandoned: client left before the stream opened", session.session_id)
            session.transition(SessionState.FAILED)
            session.transition(SessionState.CLOSED)
            return session
        session.commit()
        session.transition(SessionState.STREAMING)
        logger.info("Session {} streaming for user={}", session.session_id, session.identity.user_id)

        stream: FragmentStream | None = None
        try:
            stream = self._upstream.stream(session.identity, request.messages, streaming=True)
            await self._relay(stream, sink)
        except PeerDisconnected:
            logger.info("Session {} cancelled: client disconnected", session.session_id)
        except UpstreamFailure as exc:
            logger.error("Session {} upstream failure: {}", session.session_id, exc)
            await self._fail_in_band(sink, str(exc))
        except Exception:
            logger.exception("Session {} failed while streaming", session.session_id)
            await self._fail_in_band(sink, "Stream failed")
        finally:
            if stream is not None:
                await stream.cancel()
            session.transition(SessionState.CLOSED)
        return session

    async def _relay(self, stream: FragmentStream, sink: TransportSink) -> None:
        sent = 0
        while True:
            if sink.is_peer_gone():
                raise PeerDisconnected("Client disconnected")
            fragment = await anext(stream, None)
            if fragment is None:
                break
            if fragment.text:
                await sink.send(fragment)
                sent += 1

        await sink.close()
        self.session.transition(SessionState.COMPLETED)
        logger.info("Session {} completed ({} fragments sent)", self.session.session_id, sent)

    async def _fail_in_band(self, sink: TransportSink, message: str) -> None:
        self.session.transition(SessionState.FAILED)
        try:
            await sink.send_error(message)
        except PeerDisconnected:
            logger.debug("Session {} error not delivered: client gone", self.session.session_id)

    def _require_validated(self) -> ChatRequest:
        if self.session.state is not SessionState.VALIDATING or self.session.request is None:
            raise RuntimeError("Chat session must be validated before it runs")
        return self.session.request


class ChatService:
    """Creates chat sessions wired to the upstream generator.

    The service itself holds no per-session state; every call to
    :meth:`open_session` returns an independent controller.
    """

    def __init__(self, upstream: UpstreamGenerator | None = None) -> None:
        self.upstream = upstream or LLMService()

    def open_session(self, identity: CallerIdentity, payload: Any) -> ChatSessionController:
        """Build a controller for ``payload`` and validate it.

        Raises
        ------
        ValidationError
            If the payload is not a valid chat request.
        """
        controller = ChatSessionController(identity, payload, self.upstream)
        controller.validate()
        return controller


@lru_cache()
def get_chat_service() -> ChatService:
    """Dependency injector for ChatService instances.

    FastAPI will call this function to obtain a singleton
    ChatService.  The lru_cache decorator ensures only one
    instance exists.
    """
    return ChatService()
