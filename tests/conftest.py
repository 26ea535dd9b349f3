"""Shared fixtures for the chat gateway tests."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Sequence

repo_root = Path(__file__).resolve().parents[1]
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

# Required settings must exist before the application modules are imported
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("LLM_API_KEY", "test-key")

import pytest
from fastapi.testclient import TestClient

from src.main import app
from src.models.chat_message import ChatMessage, Fragment
from src.models.enums import UserRole
from src.models.identity import CallerIdentity
from src.services.chat_service import ChatService, get_chat_service
from src.services.identity_service import IdentityVerifier, get_identity_verifier
from src.services.upstream import FragmentStream
from src.transports.base import TransportSink
from src.utils.error_handler import UpstreamFailure


class ScriptedUpstream:
    """Upstream generator replaying a fixed list of fragment texts.

    ``fail_after`` makes the generation raise once that many fragments
    have been produced; ``fail_on_start`` makes starting it fail.
    """

    def __init__(
        self,
        texts: Sequence[str],
        fail_after: int | None = None,
        fail_on_start: bool = False,
    ) -> None:
        self.texts = list(texts)
        self.fail_after = fail_after
        self.fail_on_start = fail_on_start
        self.calls: list[tuple[CallerIdentity, list[ChatMessage], bool]] = []
        self.streams: list[FragmentStream] = []
        self.produced = 0
        self.closed = False

    def stream(
        self,
        identity: CallerIdentity,
        messages: Sequence[ChatMessage],
        streaming: bool = True,
    ) -> FragmentStream:
        self.calls.append((identity, list(messages), streaming))
        if self.fail_on_start:
            raise UpstreamFailure("Model unavailable")
        stream = FragmentStream(self._generate())
        self.streams.append(stream)
        return stream

    async def _generate(self):
        try:
            for index, text in enumerate(self.texts):
                if self.fail_after is not None and index == self.fail_after:
                    raise RuntimeError("upstream exploded")
                self.produced += 1
                yield Fragment(text=text)
            if self.fail_after is not None and self.fail_after >= len(self.texts):
                raise RuntimeError("upstream exploded")
        finally:
            self.closed = True


class RecordingSink(TransportSink):
    """Sink keeping every write in memory.

    With ``gone_after`` set the peer is reported gone once that many
    content messages were written.
    """

    def __init__(self, gone_after: int | None = None) -> None:
        super().__init__()
        self.gone_after = gone_after
        self.open_calls = 0
        self.events: list[tuple[str, str | None]] = []

    @property
    def contents(self) -> list[str]:
        return [value for kind, value in self.events if kind == "content"]

    @property
    def terminal_events(self) -> list[tuple[str, str | None]]:
        return [event for event in self.events if event[0] in ("done", "error")]

    async def open(self) -> None:
        self.open_calls += 1

    def is_peer_gone(self) -> bool:
        return self.gone_after is not None and len(self.contents) >= self.gone_after

    async def _write_fragment(self, fragment: Fragment) -> None:
        self.events.append(("content", fragment.text))

    async def _write_error(self, message: str) -> None:
        self.events.append(("error", message))

    async def _write_done(self) -> None:
        self.events.append(("done", None))


def user_message(content: str = "hi") -> dict[str, str]:
    return {"role": "user", "content": content}


@pytest.fixture
def identity() -> CallerIdentity:
    return CallerIdentity(user_id="user-42", role=UserRole.USER, email="shopper@example.com")


@pytest.fixture
def verifier() -> IdentityVerifier:
    return IdentityVerifier(secret="test-secret")


@pytest.fixture
def token(verifier: IdentityVerifier, identity: CallerIdentity) -> str:
    return verifier.issue(identity)


@pytest.fixture
def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_client(verifier: IdentityVerifier):
    """Return a factory building a TestClient served by a given upstream."""

    def _make(upstream: ScriptedUpstream) -> TestClient:
        app.dependency_overrides[get_chat_service] = lambda: ChatService(upstream=upstream)
        app.dependency_overrides[get_identity_verifier] = lambda: verifier
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()
