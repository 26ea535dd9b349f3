"""LangChain prompt assembly for chat generation."""

from __future__ import annotations

from typing import Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_core.prompts import ChatPromptTemplate, MessagesPlaceholder

from ..models.chat_message import ChatMessage
from ..models.enums import MessageRole
from ..prompts.system import DEFAULT_SYSTEM_PROMPT


class ChatChainManager:
    """Builds the message list sent to the model for one conversation.

    The persona system prompt always comes first, followed by the
    caller's messages in their original order.
    """

    def __init__(self, system_prompt: str | None = None) -> None:
        self._system_prompt = system_prompt or DEFAULT_SYSTEM_PROMPT

        self._prompt_template = ChatPromptTemplate.from_messages(
            [
                ("system", "{system_prompt}"),
                MessagesPlaceholder(variable_name="conversation"),
            ]
        )

    @property
    def system_prompt(self) -> str:
        """Return the persona prompt injected ahead of every conversation."""
        return self._system_prompt

    def build_messages(self, messages: Sequence[ChatMessage]) -> list[BaseMessage]:
        return self._prompt_template.format_messages(
            system_prompt=self._system_prompt,
            conversation=[self._to_langchain(message) for message in messages],
        )

    @staticmethod
    def _to_langchain(message: ChatMessage) -> BaseMessage:
        if message.role == MessageRole.USER:
            return HumanMessage(content=message.content)
        if message.role == MessageRole.ASSISTANT:
            return AIMessage(content=message.content)
        return SystemMessage(content=message.content)
