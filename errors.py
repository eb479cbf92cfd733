"""Exception taxonomy for the brand agent console."""

from typing import Optional


class AgentConsoleError(Exception):
    """Base class for console errors."""


class ProfileDecodeError(AgentConsoleError):
    """Backend output could not be decoded into the expected schema."""


class SynthesisError(AgentConsoleError):
    """Profile synthesis failed after exhausting its retries."""

    def __init__(self, message: str, attempts: int, last_error: Optional[Exception] = None):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class ChatTurnError(AgentConsoleError):
    """The backend failed while answering a chat turn."""


class PersistenceError(AgentConsoleError):
    """Saving or loading a workspace failed."""
