"""Response models for the chat API."""

from pydantic import BaseModel, Field

from .chat_message import ChatMessage


class ChatResponse(BaseModel):
    """Represents the assistant's complete reply to a non-streaming request."""

    message: ChatMessage


class ErrorResponse(BaseModel):
    """Structured body returned for errors raised before a stream opens."""

    success: bool = False
    error: str
    error_type: str = Field(
        ...,
        description="Coarse error category such as ``validation`` or ``auth``.",
    )
