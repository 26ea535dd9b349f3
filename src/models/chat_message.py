"""Models representing chat messages and generated fragments."""

from pydantic import BaseModel, ConfigDict

from .enums import MessageRole


class ChatMessage(BaseModel):
    """Represents a single message in a conversation.

    Messages are forwarded to the language model in the order the client
    supplied them, so the list order is the conversation order.
    """

    role: MessageRole
    content: str


class Fragment(BaseModel):
    """One ordered unit of text produced by the upstream generator.

    Concatenating every fragment of a generation in emission order gives
    the full answer.  A fragment may carry an empty string; such fragments
    have no visible content and are never relayed to the client.
    """

    model_config = ConfigDict(frozen=True)

    text: str = ""
