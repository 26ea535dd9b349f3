"""Transport-agnostic sink interface used by chat sessions."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..models.chat_message import Fragment


class TransportSink(ABC):
    """Where a session writes the answer it relays to the client.

    Concrete sinks only implement the raw writes.  This base class makes
    sure at most one terminal write (done marker or error) happens and
    that nothing is written after it, even if a caller keeps sending.
    Writes that fail because the client vanished raise
    :class:`~src.utils.error_handler.PeerDisconnected`.
    """

    def __init__(self) -> None:
        self._terminated = False

    @property
    def terminated(self) -> bool:
        return self._terminated

    @abstractmethod
    async def open(self) -> None:
        """Commit the response preamble, if the transport has one."""

    @abstractmethod
    def is_peer_gone(self) -> bool:
        """Return whether the client has disconnected."""

    async def send(self, fragment: Fragment) -> None:
        """Write one content message."""
        if self._terminated or self.is_peer_gone():
            return
        await self._write_fragment(fragment)

    async def send_error(self, message: str) -> None:
        """Write the error-tagged terminal message."""
        if self._terminated:
            return
        self._terminated = True
        if self.is_peer_gone():
            return
        await self._write_error(message)

    async def close(self) -> None:
        """Write the done marker ending this session's output."""
        if self._terminated:
            return
        self._terminated = True
        if self.is_peer_gone():
            return
        await self._write_done()

    @abstractmethod
    async def _write_fragment(self, fragment: Fragment) -> None:
        ...

    @abstractmethod
    async def _write_error(self, message: str) -> None:
        ...

    @abstractmethod
    async def _write_done(self) -> None:
        ...
