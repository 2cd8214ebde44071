"""askarden/memory.py

Rolling conversation window passed to the oracle as context.

The window is rebuilt for every request from stored (or client-supplied)
history and is never persisted. Only the most recent ``max_messages`` prior
messages are kept; the new user utterance is always appended after them.
"""

from __future__ import annotations

# Standard Library
import dataclasses
import logging
from collections.abc import Iterable, Mapping
from typing import Any, Literal

# Local Modules
from askarden.store import Message

logger = logging.getLogger("askarden.memory")

Role = Literal["user", "assistant"]


@dataclasses.dataclass(frozen=True, slots=True)
class ConversationTurn:
    """One role-tagged text fragment of the oracle context."""

    role: Role
    content: str

    def as_input(self) -> dict[str, str]:
        """Render as a Responses API input message."""
        return {"role": self.role, "content": self.content}


HistoryEntry = Message | ConversationTurn | Mapping[str, Any]


def to_turn(entry: HistoryEntry) -> ConversationTurn:
    """Normalise a history entry into a ``ConversationTurn``.

    Accepts stored ``Message`` objects, ready-made turns, and the plain
    ``{"content": ..., "isUser": ...}`` dicts the web client sends.
    """
    if isinstance(entry, ConversationTurn):
        return entry
    if isinstance(entry, Message):
        return ConversationTurn("user" if entry.is_user else "assistant", entry.content)
    if "role" in entry:
        role = "user" if entry["role"] == "user" else "assistant"
        return ConversationTurn(role, str(entry.get("content") or ""))
    raw = entry.get("isUser", entry.get("is_user", False))
    # Stored rows carry the flag as the text "true" / "false".
    is_user = raw.strip().lower() == "true" if isinstance(raw, str) else bool(raw)
    return ConversationTurn("user" if is_user else "assistant", str(entry.get("content") or ""))


class ConversationWindow:
    """Rolling context window that keeps the last N turns.

    A value of 20 keeps ~10 back-and-forth exchanges before the oldest turns
    roll off.
    """

    def __init__(self, max_messages: int = 20) -> None:
        self.max_messages = max_messages
        self._turns: list[ConversationTurn] = []

    @classmethod
    def from_history(
        cls, history: Iterable[HistoryEntry] | None, max_messages: int = 20
    ) -> ConversationWindow:
        window = cls(max_messages=max_messages)
        for entry in history or ():
            turn = to_turn(entry)
            window.add_turn(turn.role, turn.content)
        return window

    def add_turn(self, role: Role, content: str) -> None:
        """Add a turn, evicting the oldest once the window is full.

        Empty turns carry no context and are skipped.
        """
        if not content.strip():
            logger.debug("Skipping empty %s turn", role)
            return
        self._turns.append(ConversationTurn(role, content))
        if len(self._turns) > self.max_messages:
            self._turns.pop(0)

    def get_context(self, utterance: str | None = None) -> list[ConversationTurn]:
        """Return the windowed turns oldest-first, plus ``utterance`` if given.

        The utterance is appended after windowing so it is never evicted.
        """
        context = list(self._turns)
        if utterance is not None:
            context.append(ConversationTurn("user", utterance))
        return context

    def message_count(self) -> int:
        return len(self._turns)


def build_context(
    utterance: str,
    history: Iterable[HistoryEntry] | None = None,
    max_messages: int = 20,
) -> list[ConversationTurn]:
    """Build the oracle context for one request."""
    window = ConversationWindow.from_history(history, max_messages=max_messages)
    return window.get_context(utterance)
