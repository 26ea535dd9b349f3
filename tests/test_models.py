from __future__ import annotations

import pytest
from pydantic import ValidationError as PydanticValidationError

from src.models import CallerIdentity, ChatRequest, ChatSession, Fragment, MessageRole, SessionState


def test_chat_request_defaults_to_non_streaming() -> None:
    request = ChatRequest.model_validate({"messages": [{"role": "user", "content": "hi"}]})

    assert request.stream is False
    assert request.messages[0].role is MessageRole.USER


def test_chat_request_ignores_unknown_fields() -> None:
    request = ChatRequest.model_validate(
        {"messages": [{"role": "user", "content": "hi"}], "stream": True, "model": "x"}
    )

    assert request.stream is True
    assert not hasattr(request, "model")


def test_chat_request_rejects_empty_conversation() -> None:
    with pytest.raises(PydanticValidationError):
        ChatRequest.model_validate({"messages": []})


def test_fragment_is_immutable() -> None:
    fragment = Fragment(text="a")

    with pytest.raises(PydanticValidationError):
        fragment.text = "b"


def test_caller_identity_is_immutable(identity) -> None:
    with pytest.raises(PydanticValidationError):
        identity.user_id = "someone-else"


def test_session_follows_streaming_lifecycle(identity) -> None:
    session = ChatSession(identity=identity, payload={})

    for state in (
        SessionState.VALIDATING,
        SessionState.STREAMING,
        SessionState.COMPLETED,
        SessionState.CLOSED,
    ):
        session.transition(state)

    assert session.is_closed
    assert session.history[0] is SessionState.INIT
    assert session.history[-1] is SessionState.CLOSED


@pytest.mark.parametrize(
    "path",
    [
        [SessionState.STREAMING],
        [SessionState.VALIDATING, SessionState.CLOSED],
        [SessionState.VALIDATING, SessionState.FAILED, SessionState.COMPLETED],
        [SessionState.VALIDATING, SessionState.COMPLETED, SessionState.CLOSED, SessionState.INIT],
    ],
)
def test_session_rejects_illegal_transitions(identity: CallerIdentity, path) -> None:
    session = ChatSession(identity=identity, payload={})

    with pytest.raises(RuntimeError):
        for state in path:
            session.transition(state)


def test_commit_is_sticky(identity) -> None:
    session = ChatSession(identity=identity, payload={})
    assert session.response_committed is False

    session.commit()
    session.commit()

    assert session.response_committed is True
