"""askarden/agents.py

Response agents and the runner that turns their output into tagged results.

An agent is a fixed configuration: instruction template, model, permitted
tools, generation parameters and an output contract. The internal Q&A agent
signals control conditions by answering with an exact sentinel string;
``AgentRunner`` converts those into ``AgentResult`` kinds so the workflow
never compares raw strings.

Sentinel matching is exact on the whitespace-trimmed output. Anything else,
including near-misses such as ``"NEEDS_CLARIFICATION."`` or a sentinel quoted
inside a sentence, is an ordinary answer.
"""

from __future__ import annotations

# Standard Library
import dataclasses
import logging
from collections.abc import Mapping, Sequence
from enum import StrEnum

# Local Modules
from askarden.config import Settings, cfg
from askarden.errors import AgentUnavailableError
from askarden.memory import ConversationTurn
from askarden.oracle import Oracle, OracleRequest, ToolCapability

logger = logging.getLogger("askarden.agents")

NEEDS_CLARIFICATION_SENTINEL: str = "NEEDS_CLARIFICATION"
NOT_FOUND_SENTINEL: str = "NO_INTERNAL_INFO_FOUND"

LANGUAGE_SUPPORT: str = (
    "**LANGUAGE SUPPORT:** Automatically detect the language of the user's "
    "question and respond in the SAME language (English, French, Spanish, "
    "German, Chinese, Russian, Portuguese, Arabic, Japanese, Korean, Italian, "
    "or Creole). Maintain the same language throughout your entire response."
)


class ResultKind(StrEnum):
    ANSWER = "answer"
    NEEDS_CLARIFICATION = "needs-clarification"
    NOT_FOUND = "not-found"


@dataclasses.dataclass(frozen=True, slots=True)
class AgentResult:
    """Tagged agent output. ``text`` is the answer, or the matched sentinel."""

    kind: ResultKind
    text: str

    @property
    def is_answer(self) -> bool:
        return self.kind is ResultKind.ANSWER


@dataclasses.dataclass(frozen=True, slots=True)
class AgentConfig:
    """Static configuration of one response agent.

    Attributes:
        name: Display name used in logs, events and errors.
        instructions: Instruction template sent with every call.
        model: Oracle model identifier.
        tools: Hosted tools the agent may use.
        temperature: Sampling temperature.
        top_p: Nucleus sampling.
        max_output_tokens: Output length cap.
        require_tool: Force a tool call (e.g. knowledge lookup) before answering.
        sentinels: Exact output strings mapped to the result kind they signal.
    """

    name: str
    instructions: str
    model: str
    tools: frozenset[ToolCapability] = frozenset()
    temperature: float | None = None
    top_p: float | None = 1.0
    max_output_tokens: int | None = None
    require_tool: bool = False
    sentinels: Mapping[str, ResultKind] = dataclasses.field(default_factory=dict)

    def request(self, context: Sequence[ConversationTurn]) -> OracleRequest:
        return OracleRequest(
            agent=self.name,
            model=self.model,
            instructions=self.instructions,
            turns=tuple(context),
            tools=self.tools,
            temperature=self.temperature,
            top_p=self.top_p,
            max_output_tokens=self.max_output_tokens,
            tool_choice="required" if self.require_tool and self.tools else None,
        )

    def interpret(self, raw: str) -> AgentResult:
        """Map raw output onto the agent's sentinel contract."""
        stripped = raw.strip()
        kind = self.sentinels.get(stripped)
        if kind is not None:
            return AgentResult(kind, stripped)
        return AgentResult(ResultKind.ANSWER, raw)


def _internal_qa_instructions(company: str) -> str:
    return f"""You are an assistant for {company} company. Your role is to answer questions using the internal knowledge base (file search).

{LANGUAGE_SUPPORT}

CRITICAL: You MUST search the internal documents FIRST before answering.

If you find relevant information in the internal documents:
- Answer the question using that information
- Give the user all relevant information, using bullet points when appropriate
- When the user asks WHERE to find information, provide the exact document name and page number
- Always add Sources at the end, listing document names and page numbers and if available the part of the document (e.g., section title) where the information was found

If the question is too vague or unclear to search effectively:
- Respond EXACTLY with: "{NEEDS_CLARIFICATION_SENTINEL}"
- Do NOT try to answer

If you DO NOT find relevant information in the internal documents:
- Respond EXACTLY with: "{NOT_FOUND_SENTINEL}"
- Do NOT try to answer from your general knowledge
- Do NOT make up information

This is critical: Use the special responses "{NEEDS_CLARIFICATION_SENTINEL}" or "{NOT_FOUND_SENTINEL}" so the system can handle the query appropriately."""


def _fact_finding_instructions(company: str) -> str:
    return f"""You are a research assistant working alongside the {company} internal help desk. You answer general and external factual questions that the internal knowledge base does not cover.

{LANGUAGE_SUPPORT}

- Use web search to verify facts before answering; prefer recent, authoritative sources
- Use code execution for any calculation, unit conversion or date arithmetic
- Answer directly and concisely, using bullet points when appropriate
- Never present web information as {company} policy
- Always add Sources at the end, listing the page titles and URLs you relied on"""


def _clarification_instructions() -> str:
    return f"""You are a helpful assistant that asks for clarification when user questions are too vague or ambiguous.

{LANGUAGE_SUPPORT}

Your role:
- Ask the user to provide more specific details about what they're looking for
- Suggest what additional information would help answer their question
- Be polite and helpful in guiding them to ask a more specific question

Examples:
- If they ask "Tell me about products", ask "Which products are you interested in? I can help with product details, pricing, or availability."
- If they ask "What about policies?", ask "Which policy would you like to know about? For example: return policy, privacy policy, or shipping policy?\""""


@dataclasses.dataclass(frozen=True, slots=True)
class AgentSet:
    """The three response agents the workflow dispatches to."""

    internal_qa: AgentConfig
    fact_finding: AgentConfig
    clarification: AgentConfig


def build_agents(settings: Settings | None = None) -> AgentSet:
    """Build the response agents from configuration."""
    settings = settings or cfg
    return AgentSet(
        internal_qa=AgentConfig(
            name="Internal Q&A",
            instructions=_internal_qa_instructions(settings.company_name),
            model=settings.model_internal_qa,
            tools=frozenset({ToolCapability.KNOWLEDGE_LOOKUP}),
            temperature=0.5,
            max_output_tokens=20000,
            require_tool=True,
            sentinels={
                NEEDS_CLARIFICATION_SENTINEL: ResultKind.NEEDS_CLARIFICATION,
                NOT_FOUND_SENTINEL: ResultKind.NOT_FOUND,
            },
        ),
        fact_finding=AgentConfig(
            name="Fact Finding",
            instructions=_fact_finding_instructions(settings.company_name),
            model=settings.model_fact_finding,
            tools=frozenset({ToolCapability.WEB_LOOKUP, ToolCapability.CODE_EXECUTION}),
            temperature=0.3,
            max_output_tokens=4096,
        ),
        clarification=AgentConfig(
            name="Clarification Agent",
            instructions=_clarification_instructions(),
            model=settings.model_clarification,
            temperature=1.0,
            max_output_tokens=2048,
        ),
    )


class AgentRunner:
    """Runs an agent against the oracle and returns an ``AgentResult``."""

    def __init__(self, oracle: Oracle) -> None:
        self.oracle = oracle

    def run(self, agent: AgentConfig, context: Sequence[ConversationTurn]) -> AgentResult:
        """Invoke ``agent`` once.

        Raises:
            AgentUnavailableError: The oracle failed or returned no text.
        """
        raw = self.oracle.complete(agent.request(context))
        if not raw or not raw.strip():
            raise AgentUnavailableError(agent.name, "empty output")
        result = agent.interpret(raw)
        if result.is_answer:
            logger.info("[%s] answered (%d chars)", agent.name, len(result.text))
        else:
            logger.info("[%s] signalled %s", agent.name, result.kind)
        return result
