"""Bounded in-memory event store for stream resumption.

The transport stores every server-to-client message it sends on an SSE
stream and asks for a replay when a client reconnects with
``Last-Event-ID``.  Ids are per-session sequence numbers; only the newest
``max_events`` are kept, so a client that was away too long resumes with
a gap rather than an error.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass

from mcp.server.streamable_http import (
    EventCallback,
    EventId,
    EventMessage,
    EventStore,
    StreamId,
)
from mcp.types import JSONRPCMessage

log = logging.getLogger("gateway.event_store")


@dataclass
class StoredEvent:
    event_id: EventId
    stream_id: StreamId
    message: JSONRPCMessage | None


class SessionEventStore(EventStore):
    def __init__(self, max_events: int = 100) -> None:
        self._max_events = max_events
        self._events: deque[StoredEvent] = deque()
        self._index: dict[EventId, StoredEvent] = {}
        self._next_id = 0

    def __len__(self) -> int:
        return len(self._events)

    @property
    def last_event_id(self) -> EventId | None:
        return self._events[-1].event_id if self._events else None

    async def store_event(self, stream_id: StreamId, message: JSONRPCMessage | None) -> EventId:
        self._next_id += 1
        event = StoredEvent(event_id=str(self._next_id), stream_id=stream_id, message=message)
        self._events.append(event)
        self._index[event.event_id] = event

        while len(self._events) > self._max_events:
            dropped = self._events.popleft()
            del self._index[dropped.event_id]
        return event.event_id

    async def replay_events_after(
        self,
        last_event_id: EventId,
        send_callback: EventCallback,
    ) -> StreamId | None:
        """Send buffered events of the same stream newer than ``last_event_id``.

        Returns the stream id to resume, or ``None`` when ``last_event_id``
        is unknown or already aged out.
        """
        last = self._index.get(last_event_id)
        if last is None:
            log.info("Replay requested after unknown event %s", last_event_id)
            return None

        after = int(last.event_id)
        for event in list(self._events):
            if event.stream_id != last.stream_id or int(event.event_id) <= after:
                continue
            # Priming events carry no message
            if event.message is not None:
                await send_callback(EventMessage(event.message, event.event_id))
        return last.stream_id
