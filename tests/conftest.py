"""tests/conftest.py

Pytest configuration and shared fixtures for the Ask Arden test suite.
"""

from __future__ import annotations

# Standard Library
from typing import Any

# Third-Party Libraries
import pytest

# Local Modules
from askarden.config import Settings
from askarden.oracle import OracleRequest
from askarden.workflow import AskArdenWorkflow


class StubOracle:
    """Oracle double that returns scripted output per agent name.

    A response may be a string, an exception to raise, or a list consumed
    one item per call. Calls for an agent without a script fail the test.
    """

    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self.responses: dict[str, Any] = dict(responses or {})
        self.requests: list[OracleRequest] = []

    def complete(self, request: OracleRequest) -> str:
        self.requests.append(request)
        if request.agent not in self.responses:
            raise AssertionError(f"Unexpected oracle call for {request.agent!r}")
        reply = self.responses[request.agent]
        if isinstance(reply, list):
            reply = reply.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    @property
    def agents_called(self) -> list[str]:
        return [request.agent for request in self.requests]


def classified(category: str) -> str:
    """Structured classifier output for ``category``."""
    return '{"category": "%s"}' % category


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(_env_file=None, openai_api_key="test-key")


@pytest.fixture
def stub_oracle() -> StubOracle:
    return StubOracle()


@pytest.fixture
def workflow(stub_oracle: StubOracle, settings: Settings) -> AskArdenWorkflow:
    return AskArdenWorkflow(stub_oracle, settings)


@pytest.fixture
def sample_history() -> list[dict[str, Any]]:
    """Client-side history in the shape the web UI posts it.

    Returns:
        List of ``{content, isUser}`` dicts, oldest first.
    """
    return [
        {"content": "Hello!", "isUser": True},
        {"content": "Hi there! How can I help you?", "isUser": False},
        {"content": "How many vacation days do I get?", "isUser": True},
        {"content": "Full-time employees receive 20 days per year.", "isUser": False},
    ]
