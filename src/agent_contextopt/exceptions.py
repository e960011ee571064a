"""Error types for agent-contextopt."""

from typing import Optional


class ContextOptimizerError(Exception):
    """Base class for all agent-contextopt errors."""


class ValidationError(ContextOptimizerError, ValueError):
    """Malformed input handed to the optimizer. Always fatal."""


class SummarizationError(ContextOptimizerError):
    """
    The summarization backend could not produce a summary.

    Recoverable: the orchestrator falls back to the compressed
    history instead of surfacing this to the user.
    """

    def __init__(self, message: str, attempts: int = 0, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.attempts = attempts
        self.cause = cause
