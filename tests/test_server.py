#!/usr/bin/env python3
"""
SQLGrid Server Tests

REST endpoints, the WebSocket view channel, health and metrics through the
FastAPI test client.
"""

import pytest
from fastapi.testclient import TestClient

from interface.document_store import InMemoryDocumentStore
from interface.sqlgrid_server import create_app

from conftest import USERS_INSERT

pytestmark = pytest.mark.api


@pytest.fixture
def store():
    return InMemoryDocumentStore(USERS_INSERT, name="users.sql")

@pytest.fixture
def client(store, test_config):
    return TestClient(create_app(config=test_config, store=store))


class TestRestAPI:
    """Document and message endpoints."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["components"]["document"]["name"] == "users.sql"

    def test_get_document(self, client):
        response = client.get("/api/v1/document")
        assert response.status_code == 200
        body = response.json()
        assert body["fileName"] == "users.sql"
        assert body["sql"] == USERS_INSERT
        assert body["version"] == 1
        assert body["data"]["statements"][0]["columns"] == ["name", "age"]

    def test_post_edit_message(self, client, store):
        response = client.post("/api/v1/messages", json={
            "type": "cellEdit", "statementIndex": 0, "rowIndex": 0,
            "columnIndex": 1, "value": "31",
        })
        assert response.status_code == 200
        messages = response.json()["messages"]
        assert [m["type"] for m in messages] == ["updateData"]
        assert messages[0]["data"]["statements"][0]["values"] == [["Al", 31]]
        assert store.read().text == "INSERT INTO users (name, age) VALUES ('Al', 31);"

        document = client.get("/api/v1/document").json()
        assert document["version"] == 2

    def test_post_get_current_sql(self, client):
        response = client.post("/api/v1/messages", json={"type": "getCurrentSQL"})
        assert response.json()["messages"] == [{"type": "currentSQL", "sql": USERS_INSERT}]

    def test_rejected_edit_returns_edit_error(self, client, store):
        response = client.post("/api/v1/messages", json={
            "type": "editWhere", "statementIndex": 0, "whereClause": "id = 1",
        })
        messages = response.json()["messages"]
        assert messages[0]["type"] == "editError"
        assert messages[0]["operation"] == "editWhere"
        assert store.read().text == USERS_INSERT

    def test_invalid_message_produces_nothing(self, client):
        response = client.post("/api/v1/messages", json={"type": "nonsense"})
        assert response.status_code == 200
        assert response.json()["messages"] == []

    def test_metrics(self, client):
        client.post("/api/v1/messages", json={"type": "ready"})
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "sqlgrid_messages_total" in response.text


class TestWebSocket:
    """The bidirectional view channel."""

    def test_ready_and_edit_over_websocket(self, client, store):
        with client.websocket_connect("/ws") as websocket:
            websocket.send_json({"type": "ready"})
            update = websocket.receive_json()
            assert update["type"] == "updateData"
            assert update["fileName"] == "users.sql"

            websocket.send_json({"type": "addRow", "statementIndex": 0})
            update = websocket.receive_json()
            assert update["data"]["statements"][0]["values"] == [["Al", 30], ["", ""]]

            websocket.send_json({"type": "getCurrentSQL"})
            current = websocket.receive_json()
            assert current == {"type": "currentSQL", "sql": store.read().text}

    def test_non_json_frame_ignored(self, client):
        with client.websocket_connect("/ws") as websocket:
            websocket.send_text("not json")
            websocket.send_json({"type": "getCurrentSQL"})
            assert websocket.receive_json()["type"] == "currentSQL"

    def test_rejected_edit_over_websocket(self, client, store):
        with client.websocket_connect("/ws") as websocket:
            websocket.send_json({"type": "addColumn", "statementIndex": 5})
            error = websocket.receive_json()
            assert error["type"] == "editError"
            assert error["statementIndex"] == 5
        assert store.read().text == USERS_INSERT


class TestPolling:
    """External file changes reach connected views."""

    def test_poll_renders_external_change(self, store, test_config):
        app = create_app(config=test_config, store=store)
        session = app.state.session
        assert session.poll() is True
        assert session.poll() is False
        store.replace("SELECT 1;")
        assert session.poll() is True
