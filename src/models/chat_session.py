"""State carried by one chat session from request to close."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .chat_request import ChatRequest
from .enums import SessionState
from .identity import CallerIdentity

if TYPE_CHECKING:
    from ..transports.base import TransportSink


_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.INIT: frozenset({SessionState.VALIDATING}),
    SessionState.VALIDATING: frozenset(
        {SessionState.STREAMING, SessionState.COMPLETED, SessionState.FAILED}
    ),
    SessionState.STREAMING: frozenset(
        {SessionState.COMPLETED, SessionState.FAILED, SessionState.CLOSED}
    ),
    SessionState.COMPLETED: frozenset({SessionState.CLOSED}),
    SessionState.FAILED: frozenset({SessionState.CLOSED}),
    SessionState.CLOSED: frozenset(),
}


@dataclass
class ChatSession:
    """Unit of work for one inbound chat call.

    ``response_committed`` flips to true when the first byte of the real
    response is written and is never reset; it decides whether errors can
    still be reported with a status code or must travel inside the stream.
    """

    identity: CallerIdentity
    payload: Any
    request: ChatRequest | None = None
    sink: TransportSink | None = None
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    state: SessionState = field(default=SessionState.INIT, init=False)
    response_committed: bool = field(default=False, init=False)
    history: list[SessionState] = field(
        default_factory=lambda: [SessionState.INIT], init=False
    )

    def transition(self, target: SessionState) -> None:
        """Move to ``target``, rejecting moves the lifecycle does not allow."""
        if target not in _TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Illegal session transition {self.state.value} -> {target.value}"
            )
        self.state = target
        self.history.append(target)

    def commit(self) -> None:
        self.response_committed = True

    @property
    def is_closed(self) -> bool:
        return self.state is SessionState.CLOSED
