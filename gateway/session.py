"""One logical protocol session, independent of any HTTP connection.

A client may POST many requests over separate connections and open (and
re-open) a GET stream; all of it lands on the same ``ProtocolSession`` and
its SDK transport.  The transport does the JSON-RPC and SSE work; this
wrapper adds the bookkeeping the registry needs for idle eviction.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from mcp.server.streamable_http import StreamableHTTPServerTransport
from starlette.types import Receive, Scope, Send

log = logging.getLogger("gateway.session")


class ProtocolSession:
    """Per-session state.

    ``active_requests`` counts HTTP exchanges still in flight, including an
    open GET stream; a session with any of them is never considered idle.
    """

    def __init__(
        self,
        session_id: str,
        transport: StreamableHTTPServerTransport,
        now: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.id = session_id
        self.transport = transport
        self._clock = clock
        self.created_at = now if now is not None else clock()
        self.last_seen = self.created_at
        self.active_requests = 0
        self.request_count = 0

    @property
    def is_closed(self) -> bool:
        return self.transport.is_terminated

    def touch(self, now: float | None = None) -> None:
        self.last_seen = now if now is not None else self._clock()

    def is_idle(self, now: float, timeout: float) -> bool:
        return self.active_requests == 0 and now - self.last_seen > timeout

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.id,
            "closed": self.is_closed,
            "request_count": self.request_count,
            "active_requests": self.active_requests,
        }

    async def handle(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Hand one HTTP exchange to the transport."""
        self.request_count += 1
        self.active_requests += 1
        try:
            await self.transport.handle_request(scope, receive, send)
        finally:
            self.active_requests -= 1
            self.touch()

    async def close(self) -> None:
        if self.is_closed:
            return
        await self.transport.terminate()
        log.info("Session %s closed after %d request(s)", self.id, self.request_count)
