"""Write sides of the client transports a chat session can relay to."""

from .base import TransportSink  # noqa: F401
from .push_stream import EventStreamResponse, PushStreamSink  # noqa: F401
from .socket_sink import SocketSink  # noqa: F401
