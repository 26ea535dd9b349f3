"""Service encapsulating interactions with the language model.

Uses LangChain's ChatOpenAI integration to talk to any OpenAI-compatible
chat endpoint.  Each call to :meth:`LLMService.stream` starts a new
generation and hands back a :class:`FragmentStream` owned by the caller.
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Sequence

from loguru import logger
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage
from langchain_core.runnables import Runnable
from langchain_openai import ChatOpenAI

from ..chains.chat_chain_manager import ChatChainManager
from ..config.llm_config import LlmConfig, get_llm_config
from ..models.chat_message import ChatMessage, Fragment
from ..models.identity import CallerIdentity
from .upstream import FragmentStream


class LLMService:
    """Upstream generator backed by a LangChain chat model.

    The model is built from a single :class:`LlmConfig`.  If a ``base_url``
    is provided the client will communicate with the supplied endpoint,
    otherwise it will use the default OpenAI endpoint.  A prebuilt chat
    model may be passed instead, which is how tests plug in a fake one.
    """

    def __init__(
        self,
        llm_config: LlmConfig | None = None,
        llm: BaseChatModel | None = None,
    ) -> None:
        self.llm_config = llm_config or get_llm_config()

        if llm is None:
            llm_kwargs: dict[str, object] = {
                "api_key": self.llm_config.api_key,
                "model": self.llm_config.model,
                "temperature": self.llm_config.temperature,
                "timeout": self.llm_config.timeout,
            }
            if self.llm_config.base_url:
                llm_kwargs["base_url"] = self.llm_config.base_url
            if self.llm_config.max_tokens:
                llm_kwargs["max_tokens"] = self.llm_config.max_tokens
            llm = ChatOpenAI(**llm_kwargs)
        self.llm = llm

        self.chain_manager = ChatChainManager(system_prompt=self.llm_config.system_prompt)

    def stream(
        self,
        identity: CallerIdentity,
        messages: Sequence[ChatMessage],
        streaming: bool = True,
    ) -> FragmentStream:
        """Start a generation for ``identity`` over ``messages``.

        Nothing is sent to the model until the first fragment is pulled.
        With ``streaming`` off the model is invoked once and its whole
        answer arrives as a single fragment.
        """
        prompt = self.chain_manager.build_messages(messages)
        llm = self._resolve_llm(identity.user_id)
        logger.debug(
            "Starting generation user={} messages={} streaming={}",
            identity.user_id,
            len(messages),
            streaming,
        )
        return FragmentStream(
            self._generate(llm, prompt, streaming),
            idle_timeout=self.llm_config.stream_timeout,
        )

    def _resolve_llm(self, user_id: str) -> Runnable:
        """Return the model tagged with the end user's identifier."""
        if isinstance(self.llm, ChatOpenAI):
            return self.llm.bind(user=user_id)
        return self.llm

    async def _generate(
        self, llm: Runnable, prompt: list[BaseMessage], streaming: bool
    ) -> AsyncIterator[Fragment]:
        if not streaming:
            result = await llm.ainvoke(prompt)
            yield Fragment(text=_content_text(result.content))
            return

        async for chunk in llm.astream(prompt):
            yield Fragment(text=_content_text(chunk.content))


def _content_text(content: Any) -> str:
    """Flatten LangChain message content into plain text."""
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)
