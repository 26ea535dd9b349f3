"""Expose commonly used model classes at the package level.

Importing these classes here allows consumers to write concise imports like::

    from src.models import ChatRequest, ChatResponse, CallerIdentity

These names refer to the underlying Pydantic models defined in their
respective modules.
"""

from .chat_request import ChatRequest  # noqa: F401
from .chat_response import ChatResponse, ErrorResponse  # noqa: F401
from .chat_message import ChatMessage, Fragment  # noqa: F401
from .chat_session import ChatSession  # noqa: F401
from .identity import CallerIdentity  # noqa: F401
from .enums import MessageRole, SessionState, UserRole  # noqa: F401
