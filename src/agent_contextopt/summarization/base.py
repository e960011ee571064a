"""
Base interface for summarization backends.

A backend turns one block of conversation text into a summary.
Different implementations can call different services.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ..types import DetailLevel


@dataclass
class SummaryRequest:
    """Payload sent to the summarization capability."""
    text: str
    target_reduction: float
    max_length: int
    detail_level: DetailLevel
    instructions: str

    def to_payload(self) -> dict:
        return {
            "text": self.text,
            "targetReduction": self.target_reduction,
            "maxLength": self.max_length,
            "detailLevel": self.detail_level.value,
            "instructions": self.instructions,
        }


class SummarizationBackend(ABC):
    """
    Abstract base class for summarization backends.

    Implementations:
    - HttpSummarizationBackend: POSTs to a summarization endpoint
    """

    @abstractmethod
    def summarize(self, request: SummaryRequest) -> str:
        """
        Summarize one block of conversation text.

        Args:
            request: Text plus reduction target and instructions

        Returns:
            Summary text

        Raises:
            SummarizationError: on any failure
        """
        pass
