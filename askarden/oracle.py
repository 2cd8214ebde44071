"""askarden/oracle.py

Adapter for the hosted language-model / tool-execution service (the oracle).

The workflow never talks to the OpenAI SDK directly. It builds an
``OracleRequest`` and hands it to anything implementing ``Oracle``; in
production that is ``OracleClient``, which maps the request onto the
Responses API:

    ToolCapability.KNOWLEDGE_LOOKUP -> file_search (configured vector stores)
    ToolCapability.WEB_LOOKUP       -> web_search
    ToolCapability.CODE_EXECUTION   -> code_interpreter (auto container)

Failure model:
    No retry loop. A transport error, a non-2xx status, a timeout or an empty
    output all surface as ``AgentUnavailableError``.
"""

from __future__ import annotations

# Standard Library
import dataclasses
import logging
import time
from enum import StrEnum
from typing import Any, Protocol

# Third-Party Libraries
import openai
from openai import OpenAI

# Local Modules
from askarden.config import Settings, cfg
from askarden.errors import AgentUnavailableError
from askarden.memory import ConversationTurn

logger = logging.getLogger("askarden.oracle")


class ToolCapability(StrEnum):
    """Hosted tools an agent may be allowed to use."""

    KNOWLEDGE_LOOKUP = "knowledge_lookup"
    WEB_LOOKUP = "web_lookup"
    CODE_EXECUTION = "code_execution"


@dataclasses.dataclass(frozen=True, slots=True)
class OracleRequest:
    """Everything the oracle needs for one completion.

    Attributes:
        agent: Name of the calling agent (used for logging and errors).
        model: Model identifier.
        instructions: System-level instruction template.
        turns: Conversation context, oldest first, ending with the question.
        tools: Tool capabilities the model may use.
        temperature: Sampling temperature, omitted when ``None``.
        top_p: Nucleus sampling, omitted when ``None``.
        max_output_tokens: Output length cap, omitted when ``None``.
        tool_choice: ``"required"`` forces a tool call before answering.
        response_schema: JSON schema for structured output, or ``None`` for
            free text.
        schema_name: Name attached to ``response_schema``.
    """

    agent: str
    model: str
    instructions: str
    turns: tuple[ConversationTurn, ...]
    tools: frozenset[ToolCapability] = frozenset()
    temperature: float | None = None
    top_p: float | None = None
    max_output_tokens: int | None = None
    tool_choice: str | None = None
    response_schema: dict[str, Any] | None = None
    schema_name: str = "result"


class Oracle(Protocol):
    """Anything that turns an ``OracleRequest`` into output text."""

    def complete(self, request: OracleRequest) -> str: ...


class OracleClient:
    """OpenAI Responses API implementation of ``Oracle``.

    The SDK client is created on first use so importing the API module does
    not require credentials.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: OpenAI | None = None,
    ) -> None:
        self.settings = settings or cfg
        self._client = client

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(
                api_key=self.settings.openai_api_key or None,
                base_url=self.settings.openai_base_url,
                timeout=self.settings.oracle_timeout,
                max_retries=0,
            )
        return self._client

    def build_tools(self, capabilities: frozenset[ToolCapability]) -> list[dict[str, Any]]:
        """Translate tool capabilities into Responses API tool definitions.

        Raises:
            ValueError: Knowledge lookup requested but no vector store is set.
        """
        tools: list[dict[str, Any]] = []
        if ToolCapability.KNOWLEDGE_LOOKUP in capabilities:
            store_ids = list(self.settings.knowledge_vector_store_ids)
            if not store_ids:
                raise ValueError(
                    "knowledge_lookup requires KNOWLEDGE_VECTOR_STORE_IDS to be set"
                )
            tools.append({"type": "file_search", "vector_store_ids": store_ids})
        if ToolCapability.WEB_LOOKUP in capabilities:
            tools.append({"type": "web_search"})
        if ToolCapability.CODE_EXECUTION in capabilities:
            tools.append({"type": "code_interpreter", "container": {"type": "auto"}})
        return tools

    def build_payload(self, request: OracleRequest) -> dict[str, Any]:
        """Build the keyword arguments for ``client.responses.create``."""
        payload: dict[str, Any] = {
            "model": request.model,
            "instructions": request.instructions,
            "input": [turn.as_input() for turn in request.turns],
            "store": self.settings.store_responses,
        }
        tools = self.build_tools(request.tools)
        if tools:
            payload["tools"] = tools
            if request.tool_choice:
                payload["tool_choice"] = request.tool_choice
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.top_p is not None:
            payload["top_p"] = request.top_p
        if request.max_output_tokens is not None:
            payload["max_output_tokens"] = request.max_output_tokens
        if request.response_schema is not None:
            payload["text"] = {
                "format": {
                    "type": "json_schema",
                    "name": request.schema_name,
                    "schema": request.response_schema,
                    "strict": True,
                }
            }
        return payload

    def complete(self, request: OracleRequest) -> str:
        """Run one completion and return the output text.

        Raises:
            AgentUnavailableError: The call failed or returned no text.
        """
        payload = self.build_payload(request)
        logger.info(
            "[oracle] agent=%r model=%r turns=%d tools=%s",
            request.agent,
            request.model,
            len(request.turns),
            [tool["type"] for tool in payload.get("tools", [])],
        )
        started = time.perf_counter()
        try:
            response = self.client.responses.create(**payload)
        except openai.OpenAIError as exc:
            logger.error("[oracle] agent=%r call failed: %s", request.agent, exc)
            raise AgentUnavailableError(request.agent, str(exc)) from exc

        text: str = (response.output_text or "").strip()
        logger.info(
            "[oracle] agent=%r -> %d chars in %.2fs",
            request.agent,
            len(text),
            time.perf_counter() - started,
        )
        if not text:
            raise AgentUnavailableError(request.agent, "empty output")
        return text
