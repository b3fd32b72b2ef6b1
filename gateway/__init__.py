"""Session-multiplexed protocol gateway."""

from .event_store import SessionEventStore
from .protocol import build_protocol_server
from .registry import SessionRegistry
from .server import SESSION_HEADER, SessionEndpoint
from .session import ProtocolSession

__all__ = [
    "ProtocolSession",
    "SESSION_HEADER",
    "SessionEndpoint",
    "SessionEventStore",
    "SessionRegistry",
    "build_protocol_server",
]
