"""Salesforce OAuth 2.0 JWT bearer flow.

A short-lived RS256 assertion signed with the connected app's private key
is exchanged at ``{login_url}/services/oauth2/token`` for an access token
and the org's instance URL.  No refresh tokens: every connection signs a
new assertion.
"""

from __future__ import annotations

import base64
import binascii
import logging
import time
from dataclasses import dataclass

import httpx
import jwt

from crm_scheduling.errors import AuthenticationError

log = logging.getLogger("crm_scheduling.records.auth")

JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"


@dataclass(frozen=True)
class AccessToken:
    access_token: str
    instance_url: str


class SalesforceAuthenticator:
    """Signs assertions and exchanges them for access tokens."""

    def __init__(
        self,
        client_id: str,
        username: str,
        private_key_base64: str,
        login_url: str = "https://login.salesforce.com",
        ttl_seconds: int = 300,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client_id = client_id
        self._username = username
        self._private_key_base64 = private_key_base64
        self._login_url = login_url.rstrip("/")
        self._ttl_seconds = ttl_seconds
        self._timeout = timeout
        self._transport = transport

    @property
    def token_url(self) -> str:
        return f"{self._login_url}/services/oauth2/token"

    def _private_key(self) -> str:
        if not self._private_key_base64:
            raise AuthenticationError("Salesforce private key is not configured")
        try:
            return base64.b64decode(self._private_key_base64).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise AuthenticationError(
                f"Salesforce private key is not valid base64 PEM: {exc}"
            ) from exc

    def build_assertion(self, now: float | None = None) -> str:
        """Sign the JWT the token endpoint expects."""
        if not self._client_id or not self._username:
            raise AuthenticationError(
                "Salesforce client id and username must be configured"
            )
        issued = int(now if now is not None else time.time())
        claims = {
            "iss": self._client_id,
            "sub": self._username,
            "aud": self._login_url,
            "exp": issued + self._ttl_seconds,
        }
        try:
            return jwt.encode(claims, self._private_key(), algorithm="RS256")
        except (ValueError, TypeError, jwt.PyJWTError) as exc:
            raise AuthenticationError(f"Could not sign JWT assertion: {exc}") from exc

    async def fetch_token(self) -> AccessToken:
        """Run the token exchange.

        Raises:
            AuthenticationError: the endpoint refused the assertion or could
                not be reached.
        """
        assertion = self.build_assertion()
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                resp = await client.post(
                    self.token_url,
                    data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
        except httpx.HTTPError as exc:
            raise AuthenticationError(f"Salesforce auth request failed: {exc}") from exc

        try:
            data = resp.json()
        except ValueError:
            data = {}

        if resp.status_code != 200:
            raise AuthenticationError(
                f"Salesforce auth failed: {data.get('error', resp.status_code)}"
                f" - {data.get('error_description', resp.text)}"
            )

        if "access_token" not in data or "instance_url" not in data:
            raise AuthenticationError("Salesforce auth response missing token fields")

        log.info("Obtained Salesforce access token for %s", data["instance_url"])
        return AccessToken(
            access_token=data["access_token"],
            instance_url=data["instance_url"],
        )
