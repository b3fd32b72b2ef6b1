"""Tests for the Salesforce JWT authenticator and REST record gateway."""

import base64
import json
from urllib.parse import parse_qs

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from crm_scheduling.errors import AuthenticationError, ExternalServiceError
from crm_scheduling.records.auth import JWT_BEARER_GRANT, AccessToken, SalesforceAuthenticator
from crm_scheduling.records.salesforce import SalesforceConnector, SalesforceRecordGateway

LOGIN_URL = "https://login.example.com"
INSTANCE_URL = "https://org.example.my.salesforce.com"
TOKEN = AccessToken(access_token="00Dtoken", instance_url=INSTANCE_URL)


@pytest.fixture(scope="module")
def rsa_key():
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return key, base64.b64encode(pem).decode()


def make_authenticator(key_b64, handler, **kwargs):
    return SalesforceAuthenticator(
        client_id="3MVG-client",
        username="bot@example.com",
        private_key_base64=key_b64,
        login_url=LOGIN_URL,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def token_ok(request):
    return httpx.Response(200, json={"access_token": "00Dtoken", "instance_url": INSTANCE_URL})


# ── Authenticator ──────────────────────────────────────────────────


class TestSalesforceAuthenticator:
    def test_assertion_claims(self, rsa_key):
        key, key_b64 = rsa_key
        auth = make_authenticator(key_b64, token_ok, ttl_seconds=300)
        assertion = auth.build_assertion(now=1_700_000_000)
        claims = jwt.decode(
            assertion,
            key.public_key(),
            algorithms=["RS256"],
            audience=LOGIN_URL,
            options={"verify_exp": False},
        )
        assert claims == {
            "iss": "3MVG-client",
            "sub": "bot@example.com",
            "aud": LOGIN_URL,
            "exp": 1_700_000_300,
        }

    async def test_fetch_token_posts_jwt_bearer_grant(self, rsa_key):
        key, key_b64 = rsa_key
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["form"] = parse_qs(request.content.decode())
            return token_ok(request)

        token = await make_authenticator(key_b64, handler).fetch_token()

        assert token == AccessToken("00Dtoken", INSTANCE_URL)
        assert seen["url"] == f"{LOGIN_URL}/services/oauth2/token"
        assert seen["form"]["grant_type"] == [JWT_BEARER_GRANT]
        jwt.decode(
            seen["form"]["assertion"][0], key.public_key(), algorithms=["RS256"], audience=LOGIN_URL
        )

    async def test_rejected_credentials(self, rsa_key):
        _, key_b64 = rsa_key

        def handler(request):
            return httpx.Response(
                400, json={"error": "invalid_grant", "error_description": "user hasn't approved this consumer"}
            )

        with pytest.raises(AuthenticationError) as exc_info:
            await make_authenticator(key_b64, handler).fetch_token()
        assert str(exc_info.value) == (
            "Salesforce auth failed: invalid_grant - user hasn't approved this consumer"
        )
        assert exc_info.value.retryable

    async def test_missing_private_key(self):
        with pytest.raises(AuthenticationError):
            await make_authenticator("", token_ok).fetch_token()

    async def test_garbage_private_key(self):
        with pytest.raises(AuthenticationError):
            await make_authenticator(base64.b64encode(b"not a pem").decode(), token_ok).fetch_token()

    async def test_unreachable_token_endpoint(self, rsa_key):
        _, key_b64 = rsa_key

        def handler(request):
            raise httpx.ConnectError("connection refused")

        with pytest.raises(AuthenticationError):
            await make_authenticator(key_b64, handler).fetch_token()

    async def test_missing_token_fields(self, rsa_key):
        _, key_b64 = rsa_key
        auth = make_authenticator(key_b64, lambda r: httpx.Response(200, json={"access_token": "x"}))
        with pytest.raises(AuthenticationError):
            await auth.fetch_token()


# ── Record gateway ─────────────────────────────────────────────────


def make_gateway(handler):
    return SalesforceRecordGateway(TOKEN, api_version="59.0", transport=httpx.MockTransport(handler))


class TestSalesforceRecordGateway:
    async def test_query_strips_attributes(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["q"] = request.url.params["q"]
            seen["auth"] = request.headers["authorization"]
            return httpx.Response(200, json={
                "done": True,
                "records": [{"attributes": {"type": "Contact"}, "Id": "003A", "Phone": "239-290-1984"}],
            })

        gateway = make_gateway(handler)
        records = await gateway.query("SELECT Id, Phone FROM Contact")
        await gateway.close()

        assert records == [{"Id": "003A", "Phone": "239-290-1984"}]
        assert seen["path"] == "/services/data/v59.0/query"
        assert seen["q"] == "SELECT Id, Phone FROM Contact"
        assert seen["auth"] == "Bearer 00Dtoken"

    async def test_query_follows_next_records_url(self):
        def handler(request):
            if request.url.path.endswith("/query"):
                return httpx.Response(200, json={
                    "done": False,
                    "nextRecordsUrl": "/services/data/v59.0/query/01g-2000",
                    "records": [{"Id": "1"}],
                })
            assert request.url.path == "/services/data/v59.0/query/01g-2000"
            return httpx.Response(200, json={"done": True, "records": [{"Id": "2"}]})

        records = await make_gateway(handler).query("SELECT Id FROM Event")
        assert [r["Id"] for r in records] == ["1", "2"]

    async def test_create(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"id": "003NEW", "success": True, "errors": []})

        result = await make_gateway(handler).create("Contact", {"LastName": "Smith"})

        assert result.success is True
        assert result.id == "003NEW"
        assert seen == {
            "method": "POST",
            "path": "/services/data/v59.0/sobjects/Contact/",
            "body": {"LastName": "Smith"},
        }

    async def test_update(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            return httpx.Response(204)

        ok = await make_gateway(handler).update("Contact", "003000000000001AAA", {"Description": "x"})
        assert ok is True
        assert seen == {"method": "PATCH", "path": "/services/data/v59.0/sobjects/Contact/003000000000001AAA"}

    @pytest.mark.parametrize("record_id", [
        "../../../../services/apexrest/x?y=",
        "003000000000001AAA/Notes",
        "003A",
        "",
    ])
    async def test_update_rejects_malformed_id(self, record_id):
        calls = []

        def handler(request):
            calls.append(request.url.path)
            return httpx.Response(204)

        with pytest.raises(ValueError):
            await make_gateway(handler).update("Contact", record_id, {"Description": "x"})
        assert calls == []

    async def test_rejection_passes_message_through(self):
        def handler(request):
            return httpx.Response(400, json=[
                {"message": "No such column 'Fax__c' on sobject of type Contact", "errorCode": "INVALID_FIELD"}
            ])

        with pytest.raises(ExternalServiceError) as exc_info:
            await make_gateway(handler).query("SELECT Fax__c FROM Contact")
        assert "No such column" in str(exc_info.value)
        assert exc_info.value.error_code == "INVALID_FIELD"
        assert exc_info.value.status_code == 400

    async def test_expired_token(self):
        def handler(request):
            return httpx.Response(401, json=[{"message": "Session expired or invalid", "errorCode": "INVALID_SESSION_ID"}])

        with pytest.raises(AuthenticationError):
            await make_gateway(handler).create("Lead", {})

    async def test_network_failure(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out")

        with pytest.raises(ExternalServiceError):
            await make_gateway(handler).query("SELECT Id FROM Lead")


class TestSalesforceConnector:
    async def test_connects_with_fresh_token(self, rsa_key):
        _, key_b64 = rsa_key
        token_requests = []

        def handler(request):
            if request.url.path == "/services/oauth2/token":
                token_requests.append(request)
                return token_ok(request)
            return httpx.Response(200, json={"done": True, "records": []})

        transport = httpx.MockTransport(handler)
        connector = SalesforceConnector(
            make_authenticator(key_b64, handler), transport=transport
        )

        first = await connector()
        second = await connector()
        assert first is not second
        assert await first.query("SELECT Id FROM Contact") == []
        assert len(token_requests) == 2
        await first.close()
        await second.close()
