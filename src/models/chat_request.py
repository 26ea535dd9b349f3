"""Request model for the chat API."""

from pydantic import BaseModel, ConfigDict, Field

from .chat_message import ChatMessage


class ChatRequest(BaseModel):
    """Represents a request payload for a chat exchange.

    ``messages`` holds the whole conversation so far, oldest first, and
    must contain at least one message.  When ``stream`` is true the answer
    is relayed token by token over the caller's transport; otherwise a
    single complete answer is returned.  Unknown keys are ignored so that
    clients may send extra metadata without being rejected.
    """

    model_config = ConfigDict(extra="ignore")

    messages: list[ChatMessage] = Field(
        ...,
        min_length=1,
        description="Conversation history in order, oldest first.",
    )
    stream: bool = Field(
        default=False,
        description="Relay the answer incrementally instead of as one response.",
    )
