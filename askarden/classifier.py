"""askarden/classifier.py

Classification step: labels the latest question with one ``Category``.

The oracle is asked for structured output (``{"category": "<label>"}``) and
the answer is validated against the closed enumeration. Anything outside it
is fatal for the request; there is no retry and no silent fallback.

Tie-break policy:
    Underspecified questions, and questions that name no company, resolve to
    ``DEFAULT_CATEGORY`` (internal Q&A). Questions that name the configured
    company are classified as ``DEFAULT_CATEGORY`` without an oracle call.

Adding a new category:
    1. Add the label to ``Category``.
    2. Describe it in ``_classifier_instructions``.
    3. Route it in ``workflow.AskArdenWorkflow`` (no changes needed here).
"""

from __future__ import annotations

# Standard Library
import json
import logging
from collections.abc import Sequence
from enum import StrEnum
from typing import Any, Final

# Local Modules
from askarden.config import Settings, cfg
from askarden.errors import ClassificationError
from askarden.memory import ConversationTurn
from askarden.oracle import Oracle, OracleRequest

logger = logging.getLogger("askarden.classifier")


class Category(StrEnum):
    """Closed set of request categories."""

    INTERNAL_QA = "internal-qa"
    FACT_FINDING = "fact-finding"
    CLARIFICATION_NEEDED = "clarification-needed"
    OTHER = "other"


DEFAULT_CATEGORY: Final[Category] = Category.INTERNAL_QA

CLASSIFICATION_SCHEMA: Final[dict[str, Any]] = {
    "type": "object",
    "properties": {
        "category": {
            "type": "string",
            "enum": [category.value for category in Category],
        }
    },
    "required": ["category"],
    "additionalProperties": False,
}


def _classifier_instructions(company: str, default: Category) -> str:
    return (
        f"You route questions sent to the {company} help desk. "
        "Do NOT answer the question yourself. Classify ONLY the latest user "
        "message, using earlier turns as context.\n\n"
        "Categories:\n"
        f"  {Category.INTERNAL_QA} - questions about {company}: HR, policies, "
        "benefits, people, products, procedures, internal documents.\n"
        "  fact-finding - general or external facts that have nothing to do "
        f"with {company} (geography, science, news, other companies).\n"
        "  clarification-needed - too vague to act on even with the "
        "conversation context.\n"
        "  other - greetings, small talk or requests outside the help desk's "
        "purpose.\n\n"
        "Tie-break: if the question is underspecified or does not name a "
        f"company, answer {default}.\n\n"
        'Respond with a JSON object: {"category": "<label>"}'
    )


def parse_category(raw: str) -> Category:
    """Validate structured classifier output.

    Args:
        raw: Output text, expected to be ``{"category": "<label>"}``.

    Returns:
        The matching :class:`Category`.

    Raises:
        ClassificationError: Output is not JSON, lacks ``category`` or names
            an unknown label.
    """
    try:
        parsed = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as exc:
        raise ClassificationError(raw) from exc
    if not isinstance(parsed, dict):
        raise ClassificationError(raw)
    label = parsed.get("category")
    try:
        return Category(label)
    except ValueError as exc:
        raise ClassificationError(raw) from exc


def mentions_company(question: str, company: str) -> bool:
    return bool(company) and company.casefold() in question.casefold()


class Classifier:
    """Single oracle call that labels the latest question.

    Args:
        oracle: Oracle used for the structured call.
        settings: Source of the classifier model and company name.
        default_category: Category used for the tie-break and for questions
            naming the company.
    """

    name: str = "Classifier"

    def __init__(
        self,
        oracle: Oracle,
        settings: Settings | None = None,
        *,
        default_category: Category = DEFAULT_CATEGORY,
    ) -> None:
        self.oracle = oracle
        self.settings = settings or cfg
        self.default_category = default_category
        self.instructions = _classifier_instructions(
            self.settings.company_name, default_category
        )

    def classify(self, context: Sequence[ConversationTurn]) -> Category:
        """Classify the last turn of ``context``.

        Raises:
            ClassificationError: The oracle output is not a known category.
            AgentUnavailableError: The oracle call failed.
        """
        question = context[-1].content if context else ""
        if mentions_company(question, self.settings.company_name):
            logger.info(
                "Question names %r; classified as %s",
                self.settings.company_name,
                self.default_category,
            )
            return self.default_category

        raw = self.oracle.complete(
            OracleRequest(
                agent=self.name,
                model=self.settings.model_classifier,
                instructions=self.instructions,
                turns=tuple(context),
                temperature=0.0,
                max_output_tokens=64,
                response_schema=CLASSIFICATION_SCHEMA,
                schema_name="classification",
            )
        )
        try:
            category = parse_category(raw)
        except ClassificationError:
            logger.error("Unparseable classification output: %r", raw[:300])
            raise
        logger.info("Classifier resolved category: %s", category)
        return category
