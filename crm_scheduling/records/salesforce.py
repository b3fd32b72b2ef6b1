"""Salesforce REST implementation of ``RecordGateway``.

Talks to ``/services/data/v{version}`` with an access token obtained by
``SalesforceAuthenticator``.  ``SalesforceConnector`` is the ``Connector``
handed to the tools: each call authenticates and returns a new gateway.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from crm_scheduling.errors import AuthenticationError, ExternalServiceError

from .auth import AccessToken, SalesforceAuthenticator
from .base import CreateResult, RecordGateway, is_record_id

logger = logging.getLogger(__name__)


def _error_message(resp: httpx.Response) -> tuple[str, str]:
    """Pull (message, errorCode) out of a Salesforce error body."""
    try:
        body = resp.json()
    except ValueError:
        return resp.text or f"HTTP {resp.status_code}", ""

    if isinstance(body, list) and body:
        first = body[0] if isinstance(body[0], dict) else {}
        messages = [e.get("message", "") for e in body if isinstance(e, dict)]
        return "; ".join(m for m in messages if m) or str(body), first.get("errorCode", "")
    if isinstance(body, dict):
        return (
            body.get("message") or body.get("error_description") or str(body),
            body.get("errorCode") or body.get("error", ""),
        )
    return str(body), ""


class SalesforceRecordGateway(RecordGateway):
    """RecordGateway backed by the Salesforce REST API."""

    def __init__(
        self,
        token: AccessToken,
        api_version: str = "59.0",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._token = token
        self._client = httpx.AsyncClient(
            base_url=f"{token.instance_url.rstrip('/')}/services/data/v{api_version}",
            headers={
                "Authorization": f"Bearer {token.access_token}",
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise ExternalServiceError(f"Salesforce request failed: {exc}") from exc

        if resp.status_code == 401:
            message, _ = _error_message(resp)
            raise AuthenticationError(f"Salesforce rejected access token: {message}")
        if resp.status_code >= 400:
            message, code = _error_message(resp)
            raise ExternalServiceError(message, error_code=code, status_code=resp.status_code)
        return resp

    @staticmethod
    def _strip_attributes(record: dict[str, Any]) -> dict[str, Any]:
        return {k: v for k, v in record.items() if k != "attributes"}

    # ------------------------------------------------------------------
    # RecordGateway interface
    # ------------------------------------------------------------------

    async def query(self, statement: str) -> list[dict[str, Any]]:
        """Run a SOQL query, following ``nextRecordsUrl`` until done."""
        resp = await self._request("GET", "/query", params={"q": statement})
        data = resp.json()
        records = [self._strip_attributes(r) for r in data.get("records", [])]

        while not data.get("done", True) and data.get("nextRecordsUrl"):
            # nextRecordsUrl is absolute from the instance root
            resp = await self._request(
                "GET", f"{self._token.instance_url.rstrip('/')}{data['nextRecordsUrl']}"
            )
            data = resp.json()
            records.extend(self._strip_attributes(r) for r in data.get("records", []))

        logger.debug("Query returned %d records", len(records))
        return records

    async def create(self, object_type: str, fields: dict[str, Any]) -> CreateResult:
        resp = await self._request("POST", f"/sobjects/{object_type}/", json=fields)
        data = resp.json()
        errors = [
            e.get("message", str(e)) if isinstance(e, dict) else str(e)
            for e in data.get("errors", [])
        ]
        result = CreateResult(
            success=bool(data.get("success")),
            id=data.get("id", ""),
            errors=errors,
        )
        logger.info("Created %s %s (success=%s)", object_type, result.id, result.success)
        return result

    async def update(
        self, object_type: str, record_id: str, fields: dict[str, Any]
    ) -> bool:
        if not is_record_id(record_id):
            raise ValueError(f"Invalid record id: {record_id!r}")
        # Successful PATCH returns 204 with no body
        await self._request("PATCH", f"/sobjects/{object_type}/{record_id}", json=fields)
        logger.info("Updated %s %s", object_type, record_id)
        return True

    async def close(self) -> None:
        await self._client.aclose()


class SalesforceConnector:
    """Produces a freshly authenticated gateway for every tool invocation."""

    def __init__(
        self,
        authenticator: SalesforceAuthenticator,
        api_version: str = "59.0",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._authenticator = authenticator
        self._api_version = api_version
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings) -> "SalesforceConnector":
        authenticator = SalesforceAuthenticator(
            client_id=settings.sf_client_id,
            username=settings.sf_username,
            private_key_base64=settings.sf_private_key_base64,
            login_url=settings.sf_login_url,
            ttl_seconds=settings.sf_token_ttl_seconds,
            timeout=settings.sf_request_timeout,
        )
        return cls(
            authenticator,
            api_version=settings.sf_api_version,
            timeout=settings.sf_request_timeout,
        )

    async def __call__(self) -> SalesforceRecordGateway:
        token = await self._authenticator.fetch_token()
        return SalesforceRecordGateway(
            token,
            api_version=self._api_version,
            timeout=self._timeout,
            transport=self._transport,
        )
