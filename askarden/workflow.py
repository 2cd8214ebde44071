"""askarden/workflow.py

Request orchestration: classify, dispatch to a response agent, handle the
internal agent's control signals, return one final text.

Routing:
    internal-qa           -> Internal Q&A
                               answer              -> returned
                               needs-clarification -> Clarification Agent
                               not-found           -> NotFoundPolicy
                                   apology      -> NOT_FOUND_MESSAGE
                                   fact-finding -> Fact Finding
    fact-finding          -> Fact Finding
    clarification-needed  -> Clarification Agent
    other                 -> Clarification Agent

Each request is a strictly sequential chain of one classification call and
one or two agent calls. Nothing is retried; any failure aborts the request
with a single ``WorkflowError``.
"""

from __future__ import annotations

# Standard Library
import dataclasses
import logging
from collections.abc import Callable, Iterable
from typing import Any

# Local Modules
from askarden.agents import (
    AgentConfig,
    AgentResult,
    AgentRunner,
    AgentSet,
    ResultKind,
    build_agents,
)
from askarden.classifier import Category, Classifier
from askarden.config import NotFoundPolicy, Settings, cfg
from askarden.errors import InvalidRequestError
from askarden.memory import ConversationTurn, HistoryEntry, build_context
from askarden.oracle import Oracle, OracleClient

logger = logging.getLogger("askarden.workflow")

NOT_FOUND_MESSAGE: str = (
    "Sorry, I cannot answer that question. The information you're looking "
    "for is not available in our knowledge base."
)

EventCallback = Callable[[dict[str, Any]], None]


@dataclasses.dataclass(slots=True)
class WorkflowResult:
    """Outcome of one request.

    Attributes:
        text: Final response shown to the user.
        category: Classification of the question.
        agents: Names of the response agents invoked, in call order.
    """

    text: str
    category: Category
    agents: list[str] = dataclasses.field(default_factory=list)


def _emit(
    on_event: EventCallback | None,
    *,
    agent: str,
    recipient: str,
    content: str,
    event_type: str = "message",
) -> None:
    """Fire the event callback if one is registered; never raises."""
    if on_event is None:
        return
    try:
        on_event(
            {
                "agent": agent,
                "recipient": recipient,
                "content": content,
                "type": event_type,
            }
        )
    except Exception as exc:
        logger.warning("on_event callback error: %s", exc, exc_info=True)


class AskArdenWorkflow:
    """Routes a question through classification and the response agents.

    Args:
        oracle: Oracle shared by the classifier and every agent. Defaults to
            an :class:`OracleClient` built from ``settings``.
        settings: Configuration; defaults to the ``cfg`` singleton.
        agents: Response agent set; defaults to :func:`build_agents`.
        classifier: Classification step; defaults to a :class:`Classifier`
            over the same oracle.
        not_found_policy: Overrides ``settings.not_found_policy``.
        max_history_messages: Overrides ``settings.max_history_messages``.
    """

    def __init__(
        self,
        oracle: Oracle | None = None,
        settings: Settings | None = None,
        *,
        agents: AgentSet | None = None,
        classifier: Classifier | None = None,
        not_found_policy: NotFoundPolicy | None = None,
        max_history_messages: int | None = None,
    ) -> None:
        self.settings = settings or cfg
        self.oracle: Oracle = oracle or OracleClient(self.settings)
        self.agents = agents or build_agents(self.settings)
        self.classifier = classifier or Classifier(self.oracle, self.settings)
        self.runner = AgentRunner(self.oracle)
        self.not_found_policy = NotFoundPolicy(
            not_found_policy or self.settings.not_found_policy
        )
        self.max_history_messages = (
            self.settings.max_history_messages
            if max_history_messages is None
            else max_history_messages
        )
        logger.info(
            "Workflow initialized: not_found_policy=%s history_window=%d",
            self.not_found_policy,
            self.max_history_messages,
        )

    def build_context(
        self, utterance: str, history: Iterable[HistoryEntry] | None = None
    ) -> list[ConversationTurn]:
        return build_context(utterance, history, max_messages=self.max_history_messages)

    def _invoke(
        self,
        agent: AgentConfig,
        context: list[ConversationTurn],
        result: WorkflowResult,
        on_event: EventCallback | None,
    ) -> AgentResult:
        _emit(
            on_event,
            agent="Orchestrator",
            recipient=agent.name,
            content=f"[Dispatch] {agent.name}",
        )
        result.agents.append(agent.name)
        outcome = self.runner.run(agent, context)
        _emit(
            on_event,
            agent=agent.name,
            recipient="Orchestrator",
            content=f"[{outcome.kind}] {len(outcome.text)} chars",
        )
        return outcome

    def run(
        self,
        utterance: str,
        history: Iterable[HistoryEntry] | None = None,
        on_event: EventCallback | None = None,
    ) -> WorkflowResult:
        """Answer ``utterance`` given prior conversation ``history``.

        Args:
            utterance: The new user message.
            history: Prior messages oldest-first (stored ``Message`` objects,
                ``ConversationTurn`` objects or ``{content, isUser}`` dicts).
                Only the most recent ``max_history_messages`` are used.
            on_event: Optional callback receiving routing events.

        Returns:
            The final response with its category and the agents invoked.

        Raises:
            InvalidRequestError: ``utterance`` is blank.
            AgentUnavailableError: An oracle call failed or came back empty.
            ClassificationError: The classifier output was not a category.
        """
        if not utterance or not utterance.strip():
            raise InvalidRequestError("Message is required")

        context = self.build_context(utterance, history)
        logger.info("=== New request (%d context turns) ===", len(context))

        category = self.classifier.classify(context)
        _emit(
            on_event,
            agent=self.classifier.name,
            recipient="Orchestrator",
            content=f"[Routing] category={category}",
        )
        result = WorkflowResult(text="", category=category)

        if category is Category.FACT_FINDING:
            result.text = self._invoke(self.agents.fact_finding, context, result, on_event).text
        elif category in (Category.CLARIFICATION_NEEDED, Category.OTHER):
            result.text = self._invoke(self.agents.clarification, context, result, on_event).text
        else:
            result.text = self._answer_internally(context, result, on_event)

        logger.info(
            "=== Request complete: category=%s agents=%s ===",
            result.category,
            result.agents,
        )
        return result

    def _answer_internally(
        self,
        context: list[ConversationTurn],
        result: WorkflowResult,
        on_event: EventCallback | None,
    ) -> str:
        internal = self._invoke(self.agents.internal_qa, context, result, on_event)

        if internal.kind is ResultKind.NEEDS_CLARIFICATION:
            return self._invoke(self.agents.clarification, context, result, on_event).text

        if internal.kind is ResultKind.NOT_FOUND:
            if self.not_found_policy is NotFoundPolicy.FACT_FINDING:
                logger.info("Nothing found internally; falling through to fact finding")
                return self._invoke(self.agents.fact_finding, context, result, on_event).text
            logger.info("Nothing found internally; returning not-found message")
            return NOT_FOUND_MESSAGE

        return internal.text
