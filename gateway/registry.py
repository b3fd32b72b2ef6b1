"""Session registry, the single owner of session id -> ProtocolSession.

All inserts, lookups and removals go through one ``asyncio.Lock``.  A
session id is minted here and nowhere else; an id that was torn down or
never existed is never brought back, a POST carrying it gets a new session.

Each session owns one SDK ``StreamableHTTPServerTransport`` and a protocol
server task reading from it.  Those tasks live in the task group opened by
``run()``, which the application enters for its whole lifetime.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

import anyio
from anyio.abc import TaskGroup, TaskStatus
from mcp.server import Server
from mcp.server.streamable_http import StreamableHTTPServerTransport

from crm_scheduling.errors import SessionNotFoundError

from .event_store import SessionEventStore
from .session import ProtocolSession

log = logging.getLogger("gateway.registry")


class SessionRegistry:
    """Owned map of active protocol sessions.

    Args:
        server: Protocol server run once per session.
        idle_timeout: Seconds without a request before a session is evicted.
            Zero or negative disables eviction.  Eviction is checked lazily
            on ``resolve``; there is no background task.
        clock: Monotonic time source (injectable for tests).
        replay_size: Events kept per session for stream resumption.
        json_response: Answer POSTs with plain JSON instead of an SSE stream.
    """

    def __init__(
        self,
        server: Server,
        idle_timeout: float = 1800.0,
        clock: Callable[[], float] = time.monotonic,
        replay_size: int = 100,
        json_response: bool = False,
    ) -> None:
        self._server = server
        self._sessions: dict[str, ProtocolSession] = {}
        self._lock = asyncio.Lock()
        self._idle_timeout = idle_timeout
        self._clock = clock
        self._replay_size = replay_size
        self._json_response = json_response
        self._task_group: TaskGroup | None = None

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    @property
    def ids(self) -> list[str]:
        return list(self._sessions)

    @property
    def running(self) -> bool:
        return self._task_group is not None

    @staticmethod
    def new_session_id() -> str:
        return secrets.token_urlsafe(18)

    @asynccontextmanager
    async def run(self) -> AsyncIterator["SessionRegistry"]:
        """Host session tasks until the block exits, then close every session."""
        if self._task_group is not None:
            raise RuntimeError("SessionRegistry is already running")

        async with anyio.create_task_group() as tg:
            self._task_group = tg
            log.info("Session registry started")
            try:
                yield self
            finally:
                await self.close_all()
                tg.cancel_scope.cancel()
                self._task_group = None
                log.info("Session registry stopped")

    async def resolve(self, session_id: str | None = None) -> tuple[ProtocolSession, bool]:
        """Return ``(session, created)``.

        An active ``session_id`` returns that exact session.  A missing or
        unknown id creates and registers a new session under a fresh id.
        """
        if self._task_group is None:
            raise RuntimeError("SessionRegistry is not running")

        async with self._lock:
            now = self._clock()
            await self._evict_idle_locked(now)

            if session_id:
                session = self._sessions.get(session_id)
                if session is not None:
                    session.touch(now)
                    return session, False
                log.info("Unknown session id %s; starting a new session", session_id)

            new_id = self.new_session_id()
            while new_id in self._sessions:
                new_id = self.new_session_id()

            transport = StreamableHTTPServerTransport(
                mcp_session_id=new_id,
                is_json_response_enabled=self._json_response,
                event_store=SessionEventStore(self._replay_size),
            )
            session = ProtocolSession(new_id, transport, now=now, clock=self._clock)
            await self._task_group.start(self._serve, session)
            self._sessions[new_id] = session
            log.info("Session registered: %s (active: %d)", new_id, len(self._sessions))
            return session, True

    async def get(self, session_id: str | None) -> ProtocolSession:
        """Look up an active session without creating one.

        Raises:
            SessionNotFoundError: ``session_id`` is missing or not active.
        """
        async with self._lock:
            session = self._sessions.get(session_id) if session_id else None
            if session is None:
                raise SessionNotFoundError(session_id)
            session.touch(self._clock())
            return session

    async def teardown(self, session_id: str | None) -> ProtocolSession:
        """Remove a session and terminate its transport.

        Raises:
            SessionNotFoundError: ``session_id`` is missing or not active.
        """
        async with self._lock:
            session = self._sessions.pop(session_id, None) if session_id else None
            if session is None:
                raise SessionNotFoundError(session_id)
        await session.close()
        log.info("Session unregistered: %s (active: %d)", session_id, len(self._sessions))
        return session

    async def evict_idle(self) -> list[str]:
        async with self._lock:
            return await self._evict_idle_locked(self._clock())

    async def _evict_idle_locked(self, now: float) -> list[str]:
        if self._idle_timeout <= 0:
            return []
        expired = [
            sid
            for sid, session in self._sessions.items()
            if session.is_idle(now, self._idle_timeout)
        ]
        for sid in expired:
            await self._sessions.pop(sid).close()
            log.info("Session %s evicted after %.0fs idle", sid, self._idle_timeout)
        return expired

    async def close_all(self) -> None:
        async with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            await session.close()

    async def _serve(
        self,
        session: ProtocolSession,
        *,
        task_status: TaskStatus[None] = anyio.TASK_STATUS_IGNORED,
    ) -> None:
        """Run the protocol server on ``session``'s transport until it closes."""
        async with session.transport.connect() as (read_stream, write_stream):
            task_status.started()
            try:
                await self._server.run(
                    read_stream,
                    write_stream,
                    self._server.create_initialization_options(),
                    stateless=False,
                )
            except Exception:
                log.exception("Protocol server for session %s crashed", session.id)
            finally:
                self._forget(session)

    def _forget(self, session: ProtocolSession) -> None:
        # The transport may end on its own (client DELETE, crash)
        if self._sessions.get(session.id) is session:
            del self._sessions[session.id]
            log.info("Session %s ended (active: %d)", session.id, len(self._sessions))
