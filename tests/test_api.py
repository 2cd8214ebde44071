"""tests/test_api.py

HTTP tests for the FastAPI application (askarden/api.py).
"""

from __future__ import annotations

# Standard Library
from typing import Any
from unittest.mock import patch

# Third-Party Libraries
import pytest
from fastapi.testclient import TestClient

# Local Modules
from askarden.api import create_app
from askarden.config import Settings
from askarden.errors import AgentUnavailableError
from askarden.store import InMemoryMessageStore
from askarden.workflow import AskArdenWorkflow
from conftest import StubOracle, classified

FACT = "Fact Finding"


@pytest.fixture
def store() -> InMemoryMessageStore:
    return InMemoryMessageStore()


@pytest.fixture
def client(
    workflow: AskArdenWorkflow, store: InMemoryMessageStore, settings: Settings
) -> TestClient:
    return TestClient(create_app(workflow, store, settings))


class TestMeta:
    """Liveness and static endpoints."""

    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "server": "askarden"}

    def test_suggestions(self, client: TestClient, settings: Settings) -> None:
        response = client.get("/api/suggestions")
        assert response.status_code == 200
        assert response.json() == {"questions": settings.suggested_questions}


class TestChatValidation:
    """Client errors never reach the oracle."""

    @pytest.mark.parametrize("body", [{}, {"message": ""}, {"message": "   "}])
    def test_message_required(
        self, client: TestClient, stub_oracle: StubOracle, body: dict[str, Any]
    ) -> None:
        response = client.post("/api/chat", json=body)

        assert response.status_code == 400
        assert response.json() == {"error": "Message is required"}
        assert stub_oracle.requests == []

    def test_malformed_history(self, client: TestClient, stub_oracle: StubOracle) -> None:
        response = client.post(
            "/api/chat", json={"message": "Hi", "history": [{"isUser": True}]}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"
        assert "details" in response.json()
        assert stub_oracle.requests == []

    @pytest.mark.parametrize("session_id", ["", "   "])
    def test_blank_session_id(
        self,
        client: TestClient,
        stub_oracle: StubOracle,
        store: InMemoryMessageStore,
        session_id: str,
    ) -> None:
        response = client.post(
            "/api/chat",
            json={"message": "What is the capital of Japan?", "sessionId": session_id},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Session ID is required"}
        assert stub_oracle.requests == []
        assert store.list_messages(session_id) == []


class TestStatelessChat:
    """Client-held history variant."""

    def test_response_shape(self, client: TestClient, stub_oracle: StubOracle) -> None:
        stub_oracle.responses.update({"Classifier": classified("fact-finding"), FACT: "Tokyo."})

        response = client.post("/api/chat", json={"message": "What is the capital of Japan?"})

        assert response.status_code == 200
        assert response.json() == {"response": "Tokyo."}

    def test_history_forwarded(
        self,
        client: TestClient,
        stub_oracle: StubOracle,
        sample_history: list[dict[str, Any]],
    ) -> None:
        stub_oracle.responses.update({"Classifier": classified("fact-finding"), FACT: "Tokyo."})

        client.post(
            "/api/chat",
            json={"message": "What is the capital of Japan?", "history": sample_history},
        )

        turns = stub_oracle.requests[0].turns
        assert [turn.content for turn in turns[:-1]] == [h["content"] for h in sample_history]
        assert turns[1].role == "assistant"

    def test_oracle_failure(self, client: TestClient, stub_oracle: StubOracle) -> None:
        stub_oracle.responses.update(
            {"Classifier": classified("fact-finding"), FACT: AgentUnavailableError(FACT, "timeout")}
        )

        response = client.post("/api/chat", json={"message": "What is the capital of Japan?"})

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Failed to process message"
        assert "timeout" in body["details"]

    def test_malformed_classification(self, client: TestClient, stub_oracle: StubOracle) -> None:
        stub_oracle.responses["Classifier"] = "{not json"

        response = client.post("/api/chat", json={"message": "Hello?"})

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to process message"


class TestSessionChat:
    """Server-held history variant."""

    def test_exchange_persisted(
        self, client: TestClient, stub_oracle: StubOracle, store: InMemoryMessageStore
    ) -> None:
        stub_oracle.responses.update({"Classifier": classified("fact-finding"), FACT: "Tokyo."})

        response = client.post(
            "/api/chat",
            json={"message": "What is the capital of Japan?", "sessionId": "abc"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["userMessage"]["content"] == "What is the capital of Japan?"
        assert body["userMessage"]["isUser"] is True
        assert body["botMessage"]["content"] == "Tokyo."
        assert body["botMessage"]["isUser"] is False
        assert [m.content for m in store.list_messages("abc")] == [
            "What is the capital of Japan?",
            "Tokyo.",
        ]

    def test_stored_history_used(
        self, client: TestClient, stub_oracle: StubOracle, store: InMemoryMessageStore
    ) -> None:
        store.append_exchange("abc", "How many vacation days do I get?", "20 days.")
        stub_oracle.responses.update(
            {"Classifier": classified("internal-qa"), "Internal Q&A": "5 sick days."}
        )

        client.post("/api/chat", json={"message": "And sick days?", "sessionId": "abc"})

        turns = stub_oracle.requests[0].turns
        assert [turn.content for turn in turns] == [
            "How many vacation days do I get?",
            "20 days.",
            "And sick days?",
        ]

    def test_failed_exchange_not_stored(
        self, client: TestClient, stub_oracle: StubOracle, store: InMemoryMessageStore
    ) -> None:
        stub_oracle.responses.update(
            {"Classifier": classified("fact-finding"), FACT: AgentUnavailableError(FACT, "down")}
        )

        response = client.post("/api/chat", json={"message": "Capital?", "sessionId": "abc"})

        assert response.status_code == 500
        assert store.list_messages("abc") == []

    def test_history_endpoint(
        self, client: TestClient, store: InMemoryMessageStore
    ) -> None:
        store.append_exchange("abc", "Question", "Answer")
        store.append("abc", "Follow-up", True)

        response = client.get("/api/messages/abc")

        assert response.status_code == 200
        body = response.json()
        assert [m["content"] for m in body] == ["Question", "Answer", "Follow-up"]
        assert [m["isUser"] for m in body] == [True, False, True]
        assert set(body[0]) == {"id", "content", "isUser", "timestamp"}

    def test_history_endpoint_unknown_session(self, client: TestClient) -> None:
        response = client.get("/api/messages/missing")
        assert response.status_code == 200
        assert response.json() == []

    def test_history_endpoint_store_failure(
        self, client: TestClient, store: InMemoryMessageStore
    ) -> None:
        with patch.object(store, "list_messages", side_effect=RuntimeError("database is locked")):
            response = client.get("/api/messages/abc")

        assert response.status_code == 500
        assert response.json() == {
            "error": "Failed to load messages",
            "details": "database is locked",
        }
