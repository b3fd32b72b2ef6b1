"""Error types raised by the CRM tool layer.

Tool handlers never let these escape an invocation; ``BaseTool.invoke``
turns each of them into an ``isError`` result.  The gateway raises
``SessionNotFoundError`` which the HTTP layer maps to a 404.
"""

from __future__ import annotations


class CRMError(Exception):
    """Base class for every error this package raises on purpose."""

    retryable: bool = False


class ToolValidationError(CRMError):
    """Tool arguments were missing or malformed."""


class AuthenticationError(CRMError):
    """The token exchange failed, or the record store rejected our token."""

    retryable = True


class ExternalServiceError(CRMError):
    """The record store rejected a query, create or update."""

    def __init__(
        self,
        message: str,
        error_code: str = "",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.status_code = status_code


class SessionNotFoundError(CRMError):
    """No active protocol session exists for the given id."""

    def __init__(self, session_id: str | None) -> None:
        super().__init__(f"Session not found: {session_id or '<none>'}")
        self.session_id = session_id
