"""HTTP tests for the protocol endpoint and health check."""

import json

import pytest
from fastapi.testclient import TestClient

from conftest import FakeConnector, FakeRecordGateway
from crm_scheduling.app import create_app
from crm_scheduling.config import Settings
from crm_scheduling.tools.registry import build_default_registry
from gateway.server import SESSION_HEADER

ACCEPT = {"accept": "application/json, text/event-stream"}

INIT = {
    "jsonrpc": "2.0",
    "id": 1,
    "method": "initialize",
    "params": {
        "protocolVersion": "2025-03-26",
        "clientInfo": {"name": "pytest", "version": "1.0"},
        "capabilities": {},
    },
}
INITIALIZED = {"jsonrpc": "2.0", "method": "notifications/initialized"}


@pytest.fixture
def fake_gateway():
    return FakeRecordGateway()


@pytest.fixture
def client(fake_gateway):
    settings = Settings(
        sf_client_id="id",
        sf_username="u",
        sf_private_key_base64="k",
        mcp_json_response=True,
    )
    tools = build_default_registry(FakeConnector(fake_gateway), settings)
    app = create_app(settings=settings, tools=tools)
    with TestClient(app) as c:
        yield c


def post(client, message, session_id=None):
    headers = dict(ACCEPT)
    if session_id:
        headers[SESSION_HEADER] = session_id
    return client.post("/mcp", json=message, headers=headers)


def open_session(client):
    resp = post(client, INIT)
    session_id = resp.headers[SESSION_HEADER]
    assert post(client, INITIALIZED, session_id).status_code == 202
    return session_id


def call(client, session_id, name, arguments):
    resp = post(client, {
        "jsonrpc": "2.0",
        "id": 7,
        "method": "tools/call",
        "params": {"name": name, "arguments": arguments},
    }, session_id)
    assert resp.status_code == 200
    return resp.json()["result"]


class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


class TestPost:
    def test_initialize_returns_session_header(self, client):
        resp = post(client, INIT)
        assert resp.status_code == 200
        assert resp.headers[SESSION_HEADER]
        result = resp.json()["result"]
        assert result["serverInfo"]["name"] == "salesforce-mcp-server"
        assert "tools" in result["capabilities"]

    def test_session_reused(self, client):
        session_id = open_session(client)
        resp = post(client, {"jsonrpc": "2.0", "id": 2, "method": "ping"}, session_id)
        assert resp.status_code == 200
        assert resp.headers[SESSION_HEADER] == session_id
        assert len(client.app.state.sessions) == 1

    def test_unknown_session_gets_new_id(self, client):
        resp = post(client, INIT, session_id="stale-id")
        assert resp.status_code == 200
        new_id = resp.headers[SESSION_HEADER]
        assert new_id != "stale-id"
        assert new_id in client.app.state.sessions
        assert "stale-id" not in client.app.state.sessions

    def test_parse_error(self, client):
        resp = client.post(
            "/mcp",
            content=b"{not json",
            headers={**ACCEPT, "content-type": "application/json"},
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == -32700

    def test_tools_list(self, client):
        session_id = open_session(client)
        resp = post(client, {"jsonrpc": "2.0", "id": 3, "method": "tools/list"}, session_id)
        names = {t["name"] for t in resp.json()["result"]["tools"]}
        assert len(names) == 8
        assert "get_available_slots" in names
        assert not any(n.startswith("hackstart_") for n in names)

    def test_weekend_slots(self, client, fake_gateway):
        result = call(client, open_session(client), "get_available_slots", {"date": "2026-01-25"})
        assert result["isError"] is False
        payload = json.loads(result["content"][0]["text"])
        assert payload["available"] is False
        assert payload["availableSlots"] == []
        assert fake_gateway.queries == []

    def test_validation_error_is_tool_result(self, client, fake_gateway):
        result = call(client, open_session(client), "create_contact", {"firstName": "Jo"})
        assert result["isError"] is True
        assert "lastName" in result["content"][0]["text"]
        assert fake_gateway.created == []

    def test_create_contact(self, client):
        result = call(
            client, open_session(client), "create_contact",
            {"firstName": "Jo", "lastName": "Smith", "phone": "5551234567"},
        )
        assert json.loads(result["content"][0]["text"]) == {"success": True, "contactId": "001FAKE"}

    def test_legacy_tool_name(self, client, fake_gateway):
        result = call(client, open_session(client), "hackstart_create_account", {"name": "Acme"})
        assert result["isError"] is False
        assert fake_gateway.created == [("Account", {"Name": "Acme"})]

    def test_malformed_contact_id_never_reaches_crm(self, client, fake_gateway):
        result = call(client, open_session(client), "update_contact_summary", {
            "contactId": "../../../../services/apexrest/x?y=",
            "conversationSummary": "hi",
        })
        assert result["isError"] is True
        assert fake_gateway.updated == []


class TestStreamAndDelete:
    def test_stream_unknown_session(self, client):
        resp = client.get("/mcp", headers={**ACCEPT, SESSION_HEADER: "nope"})
        assert resp.status_code == 404
        assert resp.json() == {"error": "Session not found"}

    def test_stream_without_session(self, client):
        assert client.get("/mcp", headers=ACCEPT).status_code == 404

    def test_delete_unknown_session(self, client):
        resp = client.delete("/mcp", headers={SESSION_HEADER: "nope"})
        assert resp.status_code == 404
        assert resp.json() == {"error": "Session not found"}

    def test_delete_then_post_starts_new_session(self, client):
        session_id = open_session(client)
        resp = client.delete("/mcp", headers={SESSION_HEADER: session_id})
        assert resp.status_code == 200
        assert session_id not in client.app.state.sessions

        assert client.delete("/mcp", headers={SESSION_HEADER: session_id}).status_code == 404
        again = post(client, INIT, session_id)
        assert again.status_code == 200
        assert again.headers[SESSION_HEADER] != session_id

    def test_other_methods_rejected(self, client):
        assert client.put("/mcp", json={}).status_code == 405
