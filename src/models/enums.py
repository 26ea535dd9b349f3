"""Enumerations used across models."""

from enum import Enum


class MessageRole(str, Enum):
    """Enum for message roles in a conversation.

    The role field distinguishes between the sender of each message in the
    conversation.  ``USER`` denotes a human message, ``ASSISTANT`` denotes
    a reply from the AI model, and ``SYSTEM`` can be used for
    instructions that steer the model.
    """

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class UserRole(str, Enum):
    """Role carried in the caller's identity token."""

    USER = "user"
    ADMIN = "admin"
    SELLER = "seller"


class SessionState(str, Enum):
    """Lifecycle states of a single chat session.

    ``INIT -> VALIDATING -> STREAMING -> {COMPLETED | FAILED} -> CLOSED``.
    Non-streaming sessions skip ``STREAMING``; a session cancelled because
    the peer disconnected moves from ``STREAMING`` straight to ``CLOSED``.
    """

    INIT = "init"
    VALIDATING = "validating"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"
    CLOSED = "closed"
