"""askarden/api.py

FastAPI HTTP interface for the Ask Arden workflow.

Endpoints:
  GET  /health                    - liveness probe
  GET  /api/suggestions           - starter questions for an empty chat
  POST /api/chat                  - answer one message
  GET  /api/messages/{session_id} - stored history of a session

``POST /api/chat`` has two shapes:

- stateless: the client sends its own recent ``history`` and receives
  ``{"response": "..."}``;
- session-based: the client sends a ``sessionId``; history is read from the
  message store and the exchange is appended only after the workflow
  succeeds. The reply is ``{"userMessage": {...}, "botMessage": {...}}``.

Failures return ``{"error": ..., "details": ...}`` with a 400 or 500 status.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from askarden import __version__
from askarden.config import Settings, cfg, configure_logging
from askarden.errors import InvalidRequestError
from askarden.memory import ConversationTurn, HistoryEntry
from askarden.store import Message, MessageStore, build_store
from askarden.workflow import AskArdenWorkflow

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logger = logging.getLogger("askarden.api")

# ---------------------------------------------------------------------------
# Thread pool for running the synchronous workflow
# ---------------------------------------------------------------------------
_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="workflow")

# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HistoryItem(CamelModel):
    content: str
    is_user: bool


class ChatRequest(CamelModel):
    message: str | None = None
    history: list[HistoryItem] | None = None
    session_id: str | None = None


class ChatResponse(CamelModel):
    response: str


class MessageOut(CamelModel):
    id: str
    content: str
    is_user: bool
    timestamp: datetime

    @classmethod
    def from_message(cls, message: Message) -> MessageOut:
        return cls(
            id=message.id,
            content=message.content,
            is_user=message.is_user,
            timestamp=message.timestamp,
        )


class SessionChatResponse(CamelModel):
    user_message: MessageOut
    bot_message: MessageOut


class SuggestionsResponse(CamelModel):
    questions: list[str]


def _error(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    content: dict[str, str] = {"error": error}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(
    workflow: AskArdenWorkflow | None = None,
    store: MessageStore | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        workflow: Workflow answering messages; built from ``settings`` if
            omitted.
        store: Message store for the session-based variant; selected by
            ``STORE_BACKEND`` if omitted.
        settings: Configuration; defaults to the ``cfg`` singleton.
    """
    settings = settings or cfg
    workflow = workflow or AskArdenWorkflow(settings=settings)
    store = store or build_store(settings)

    app = FastAPI(
        title=f"{settings.assistant_name} API",
        version=__version__,
        description=(
            f"Chat endpoint answering {settings.company_name} HR and company "
            "questions from the internal knowledge base."
        ),
    )
    app.state.workflow = workflow
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(400, "Invalid request", str(exc.errors()))

    def _answer(body: ChatRequest) -> ChatResponse | SessionChatResponse:
        message = body.message or ""
        if body.session_id:
            history: list[HistoryEntry] = list(
                store.list_messages(body.session_id, limit=workflow.max_history_messages)
            )
        else:
            history = [
                ConversationTurn("user" if item.is_user else "assistant", item.content)
                for item in body.history or []
            ]

        result = workflow.run(message, history)

        if body.session_id:
            user_message, bot_message = store.append_exchange(
                body.session_id, message, result.text
            )
            return SessionChatResponse(
                user_message=MessageOut.from_message(user_message),
                bot_message=MessageOut.from_message(bot_message),
            )
        return ChatResponse(response=result.text)

    # -----------------------------------------------------------------------
    # Endpoints
    # -----------------------------------------------------------------------

    @app.get("/health", tags=["meta"])
    async def health() -> dict[str, str]:
        """Liveness probe."""
        return {"status": "ok", "server": "askarden"}

    @app.get("/api/suggestions", response_model=SuggestionsResponse, tags=["chat"])
    async def suggestions() -> SuggestionsResponse:
        """Starter questions shown on an empty conversation."""
        return SuggestionsResponse(questions=list(settings.suggested_questions))

    @app.post("/api/chat", response_model=None, tags=["chat"])
    async def chat(body: ChatRequest) -> ChatResponse | SessionChatResponse | JSONResponse:
        """Answer one user message.

        The workflow makes one to three blocking oracle calls, so it runs in
        the thread pool rather than on the event loop.
        """
        if not body.message or not body.message.strip():
            return _error(400, "Message is required")
        if body.session_id is not None and not body.session_id.strip():
            return _error(400, "Session ID is required")

        loop = asyncio.get_event_loop()
        try:
            return await loop.run_in_executor(_executor, _answer, body)
        except InvalidRequestError as exc:
            return _error(400, str(exc))
        except Exception as exc:
            logger.error("Error processing message: %s", exc, exc_info=True)
            return _error(
                500,
                "Failed to process message",
                str(exc) or type(exc).__name__,
            )

    @app.get(
        "/api/messages/{session_id}",
        response_model=list[MessageOut],
        tags=["chat"],
    )
    async def messages(session_id: str) -> list[MessageOut] | JSONResponse:
        """Return a session's messages oldest-first."""
        loop = asyncio.get_event_loop()
        try:
            stored = await loop.run_in_executor(_executor, store.list_messages, session_id)
        except Exception as exc:
            logger.error("Error loading messages for %s: %s", session_id, exc, exc_info=True)
            return _error(
                500,
                "Failed to load messages",
                str(exc) or type(exc).__name__,
            )
        return [MessageOut.from_message(message) for message in stored]

    return app


app: FastAPI = create_app()

# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def run_api() -> None:
    """Start the FastAPI server via uvicorn."""
    load_dotenv()
    configure_logging(cfg)
    logger.info("Starting askarden API on %s:%d", cfg.api_host, cfg.api_port)
    uvicorn.run(
        "askarden.api:app",
        host=cfg.api_host,
        port=cfg.api_port,
        log_level=cfg.log_level.lower(),
        reload=False,
    )


if __name__ == "__main__":
    run_api()
