from __future__ import annotations

import asyncio

from langchain_core.language_models.fake_chat_models import GenericFakeChatModel
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from src.chains.chat_chain_manager import ChatChainManager
from src.config.llm_config import LlmConfig
from src.models.chat_message import ChatMessage
from src.models.enums import MessageRole
from src.services.llm_service import LLMService, _content_text


def _config(**overrides) -> LlmConfig:
    return LlmConfig(LLM_API_KEY="test-key", **overrides)


def _conversation() -> list[ChatMessage]:
    return [
        ChatMessage(role=MessageRole.USER, content="Do you sell kettles?"),
        ChatMessage(role=MessageRole.ASSISTANT, content="Yes, several."),
        ChatMessage(role=MessageRole.USER, content="Which is cheapest?"),
    ]


def test_chain_manager_puts_persona_first_and_keeps_order() -> None:
    manager = ChatChainManager(system_prompt="You are a test persona.")

    messages = manager.build_messages(_conversation())

    assert isinstance(messages[0], SystemMessage)
    assert messages[0].content == "You are a test persona."
    assert [type(message) for message in messages[1:]] == [HumanMessage, AIMessage, HumanMessage]
    assert [message.content for message in messages[1:]] == [
        "Do you sell kettles?",
        "Yes, several.",
        "Which is cheapest?",
    ]


def test_streaming_generation_yields_model_chunks(identity) -> None:
    llm = GenericFakeChatModel(messages=iter([AIMessage(content="The blue kettle")]))
    service = LLMService(llm_config=_config(), llm=llm)

    async def scenario() -> list[str]:
        stream = service.stream(identity, _conversation(), streaming=True)
        return [fragment.text async for fragment in stream]

    texts = asyncio.run(scenario())

    assert len(texts) > 1
    assert "".join(texts) == "The blue kettle"


def test_non_streaming_generation_yields_one_fragment(identity) -> None:
    llm = GenericFakeChatModel(messages=iter([AIMessage(content="The blue kettle")]))
    service = LLMService(llm_config=_config(), llm=llm)

    async def scenario() -> list[str]:
        stream = service.stream(identity, _conversation(), streaming=False)
        return [fragment.text async for fragment in stream]

    assert asyncio.run(scenario()) == ["The blue kettle"]


def test_stream_timeout_comes_from_config(identity) -> None:
    llm = GenericFakeChatModel(messages=iter([AIMessage(content="hi")]))
    service = LLMService(llm_config=_config(LLM_STREAM_TIMEOUT=2.5), llm=llm)

    stream = service.stream(identity, _conversation())

    assert stream._idle_timeout == 2.5
    asyncio.run(stream.cancel())


def test_openai_model_is_tagged_with_user(identity) -> None:
    service = LLMService(llm_config=_config(LLM_MODEL="gpt-4o-mini"))

    bound = service._resolve_llm(identity.user_id)

    assert bound.kwargs == {"user": identity.user_id}


def test_content_text_flattens_blocks() -> None:
    assert _content_text("plain") == "plain"
    assert _content_text([{"type": "text", "text": "a"}, "b", {"type": "image_url"}]) == "ab"
    assert _content_text(None) == ""
