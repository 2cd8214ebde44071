"""askarden/config.py

Runtime configuration loaded from environment variables / .env file.

Every component accepts an explicit ``Settings`` instance and falls back to
the module-level ``cfg`` singleton, so tests can build their own settings
without touching the environment.
"""

from __future__ import annotations

import logging
from enum import StrEnum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMAT: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Vector store holding the company handbook, code of conduct, HR policies.
DEFAULT_VECTOR_STORE_ID: str = "vs_691b2685741881918f7ac84544d45cca"


class NotFoundPolicy(StrEnum):
    """What the workflow does when the internal agent finds nothing."""

    APOLOGY = "apology"
    FACT_FINDING = "fact-finding"


class StoreBackend(StrEnum):
    """Message store implementations selectable via ``STORE_BACKEND``."""

    MEMORY = "memory"
    SQL = "sql"


class Settings(BaseSettings):
    """Ask Arden configuration.

    Attributes:
        openai_api_key: API key for the hosted oracle.  Empty means the OpenAI
            SDK reads ``OPENAI_API_KEY`` itself.
        openai_base_url: Optional alternative Responses API endpoint.
        oracle_timeout: Per-call timeout in seconds.
        store_responses: Whether the oracle keeps responses server-side.
        model_classifier: Model used by the classification step.
        model_internal_qa: Model used by the internal knowledge agent.
        model_fact_finding: Model used by the web fact-finding agent.
        model_clarification: Model used by the clarification agent.
        knowledge_vector_store_ids: Vector stores searched by knowledge lookup.
        company_name: Company whose knowledge base the assistant serves.
        assistant_name: Display name of the assistant.
        max_history_messages: Prior messages passed to the oracle per request.
        not_found_policy: Routing when the knowledge base has no answer.
        store_backend: Message store implementation.
        database_url: SQLAlchemy URL used by the ``sql`` store backend.
        suggested_questions: Starter questions offered on an empty chat.
        api_host: Bind address of the HTTP API.
        api_port: Bind port of the HTTP API.
        log_level: Root log level for the entry points.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    openai_api_key: str = Field("", description="OpenAI API key.")
    openai_base_url: str | None = Field(
        None, description="Override for the OpenAI API base URL."
    )
    oracle_timeout: float = Field(
        120.0, description="Timeout in seconds for a single oracle call."
    )
    store_responses: bool = Field(
        True, description="Ask the oracle to store responses server-side."
    )

    model_classifier: str = Field("gpt-4.1-mini")
    model_internal_qa: str = Field("gpt-5.1")
    model_fact_finding: str = Field("gpt-4.1")
    model_clarification: str = Field("gpt-4.1-nano")

    knowledge_vector_store_ids: list[str] = Field(
        default_factory=lambda: [DEFAULT_VECTOR_STORE_ID],
        description="Vector store ids searched by the internal Q&A agent.",
    )
    company_name: str = Field("Spice World")
    assistant_name: str = Field("Ask Arden")

    max_history_messages: int = Field(
        20,
        ge=0,
        description="Prior messages (10 exchanges) sent as oracle context.",
    )
    not_found_policy: NotFoundPolicy = Field(
        NotFoundPolicy.APOLOGY,
        description=(
            "'apology' returns a fixed message when the knowledge base has "
            "nothing; 'fact-finding' falls through to the web agent."
        ),
    )

    store_backend: StoreBackend = Field(StoreBackend.MEMORY)
    database_url: str = Field("sqlite:///askarden.db")

    suggested_questions: list[str] = Field(
        default_factory=lambda: [
            "Who is the founder of Spice World?",
            "Tell me the SPICE WORLD'S CODE OF BUSINESS CONDUCT AND ETHICS",
        ]
    )

    api_host: str = Field("0.0.0.0")
    api_port: int = Field(8000)
    log_level: str = Field("INFO")


cfg: Settings = Settings()


def configure_logging(settings: Settings | None = None) -> None:
    """Configure root logging for an entry point (API server or CLI)."""
    settings = settings or cfg
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
