"""HTTP surface for the session-multiplexed protocol endpoint.

Endpoints (all on one path, session id in the ``mcp-session-id`` header):

  POST   /mcp   submit a JSON-RPC message; session created if absent
  GET    /mcp   open/resume the server event stream (404 if unknown)
  DELETE /mcp   tear the session down (404 if unknown)

The SDK transport of the resolved session writes the actual response.
When a POST creates a session, the request's session header is rewritten
to the new id first, so a client whose old id was torn down or evicted is
served (and told its new id) instead of being rejected.
"""

from __future__ import annotations

import logging
from contextlib import suppress

from fastapi.responses import JSONResponse
from mcp.server.streamable_http import MCP_SESSION_ID_HEADER
from starlette.requests import Request
from starlette.types import Receive, Scope, Send

from crm_scheduling.errors import SessionNotFoundError

from .registry import SessionRegistry

log = logging.getLogger("gateway.server")

SESSION_HEADER = MCP_SESSION_ID_HEADER


def _not_found() -> JSONResponse:
    return JSONResponse({"error": "Session not found"}, status_code=404)


def with_session_header(scope: Scope, session_id: str) -> Scope:
    """Copy of ``scope`` whose session header carries ``session_id``."""
    key = SESSION_HEADER.encode("latin-1")
    headers = [(k, v) for k, v in scope["headers"] if k.lower() != key]
    headers.append((key, session_id.encode("latin-1")))
    return {**scope, "headers": headers}


class SessionEndpoint:
    """ASGI app behind the protocol path; routes each method to a session."""

    def __init__(self, sessions: SessionRegistry) -> None:
        self.sessions = sessions

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        session_id = request.headers.get(SESSION_HEADER)

        if request.method == "POST":
            await self._post(scope, receive, send, session_id)
        elif request.method == "DELETE":
            await self._delete(scope, receive, send, session_id)
        else:
            await self._stream(scope, receive, send, session_id)

    async def _post(self, scope: Scope, receive: Receive, send: Send, session_id: str | None) -> None:
        try:
            session, created = await self.sessions.resolve(session_id)
        except Exception as e:
            log.exception("Could not open a protocol session")
            await JSONResponse({"error": str(e)}, status_code=500)(scope, receive, send)
            return

        if created:
            log.info("New protocol session %s", session.id)
            scope = with_session_header(scope, session.id)
        await session.handle(scope, receive, send)

    async def _stream(self, scope: Scope, receive: Receive, send: Send, session_id: str | None) -> None:
        try:
            session = await self.sessions.get(session_id)
        except SessionNotFoundError:
            await _not_found()(scope, receive, send)
            return
        log.info("Session %s stream opened", session.id)
        await session.handle(scope, receive, send)

    async def _delete(self, scope: Scope, receive: Receive, send: Send, session_id: str | None) -> None:
        try:
            session = await self.sessions.get(session_id)
        except SessionNotFoundError:
            await _not_found()(scope, receive, send)
            return
        # The transport terminates itself and answers the client
        await session.handle(scope, receive, send)
        with suppress(SessionNotFoundError):
            await self.sessions.teardown(session.id)
