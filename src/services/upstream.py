"""Boundary between chat sessions and the token-producing upstream.

A generation is exposed as a :class:`FragmentStream`: an async iterator the
session pulls from one fragment at a time, plus an explicit
:meth:`FragmentStream.cancel` used when nobody is listening any more.
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Protocol, Sequence

from loguru import logger

from ..models.chat_message import ChatMessage, Fragment
from ..models.identity import CallerIdentity
from ..utils.error_handler import UpstreamFailure


class FragmentStream:
    """Lazy, finite, non-restartable sequence of fragments.

    Wraps the async generator producing the fragments.  Any error raised
    while pulling is reported as :class:`UpstreamFailure`.  Cancelling
    closes the generator, which in turn closes whatever request it holds
    open, so no further fragments are produced.
    """

    def __init__(
        self,
        source: AsyncIterator[Fragment],
        idle_timeout: float | None = None,
    ) -> None:
        self._source = source
        self._idle_timeout = idle_timeout
        self.exhausted = False
        self.cancelled = False

    def __aiter__(self) -> "FragmentStream":
        return self

    async def __anext__(self) -> Fragment:
        if self.exhausted or self.cancelled:
            raise StopAsyncIteration
        try:
            if self._idle_timeout is None:
                fragment = await self._source.__anext__()
            else:
                fragment = await asyncio.wait_for(
                    self._source.__anext__(), timeout=self._idle_timeout
                )
        except StopAsyncIteration:
            self.exhausted = True
            raise
        except asyncio.TimeoutError as exc:
            self.exhausted = True
            raise UpstreamFailure("Upstream generation timed out") from exc
        except UpstreamFailure:
            self.exhausted = True
            raise
        except Exception as exc:
            self.exhausted = True
            raise UpstreamFailure(str(exc) or "Upstream generation failed") from exc
        return fragment

    async def cancel(self) -> None:
        """Stop the generation early.  Does nothing once it has finished."""
        if self.exhausted or self.cancelled:
            return
        self.cancelled = True
        aclose = getattr(self._source, "aclose", None)
        if aclose is None:
            return
        try:
            await aclose()
        except Exception:
            logger.exception("Error while cancelling upstream generation")


class UpstreamGenerator(Protocol):
    """Anything able to start a generation for a caller's conversation."""

    def stream(
        self,
        identity: CallerIdentity,
        messages: Sequence[ChatMessage],
        streaming: bool = True,
    ) -> FragmentStream:
        ...
