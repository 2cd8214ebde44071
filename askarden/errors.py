"""askarden/errors.py

Exception hierarchy shared by the workflow, the oracle adapter and the API.

    AskArdenError
      InvalidRequestError     - bad caller input, no oracle call attempted
      WorkflowError
        AgentUnavailableError - oracle failure or empty agent output
        ClassificationError   - classifier output outside the category set
"""

from __future__ import annotations


class AskArdenError(Exception):
    """Base class for every error raised by the askarden package."""


class InvalidRequestError(AskArdenError, ValueError):
    """Raised when a caller submits an empty message or session id."""


class WorkflowError(AskArdenError):
    """A request failed while the workflow was talking to the oracle."""


class AgentUnavailableError(WorkflowError):
    """The oracle call failed or produced no usable output.

    Attributes:
        agent: Name of the agent whose call failed.
    """

    def __init__(self, agent: str, reason: str) -> None:
        super().__init__(f"Agent response unavailable ({agent}): {reason}")
        self.agent = agent
        self.reason = reason


class ClassificationError(WorkflowError):
    """The classifier returned something that is not a known category."""

    def __init__(self, raw: str) -> None:
        super().__init__(f"Invalid classification output: {raw[:200]!r}")
        self.raw = raw
