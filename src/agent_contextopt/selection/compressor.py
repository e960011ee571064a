"""
Deterministic message compression without AI.

Keeps the opening and the most recent messages verbatim, rescues a
few important messages from the middle and replaces the rest with a
single CompressionMarker.
"""

from typing import List, Optional, Sequence

from ..tokens import estimate_message_tokens
from ..types import CompressionMarker, CompressionResult, Entry
from .importance import ImportanceScorer


class MessageCompressor:
    """Bounds message count using importance scores."""

    def __init__(
        self,
        keep_first: int = 2,
        keep_last: int = 10,
        max_important: int = 3,
        threshold: int = 20,
        scorer: Optional[ImportanceScorer] = None,
    ):
        """
        Initialize compressor.

        Args:
            keep_first: Messages kept from the start of the history
            keep_last: Messages kept from the end of the history
            max_important: Middle messages rescued by importance score
            threshold: Histories at or below this length pass through untouched
            scorer: Importance scorer (default heuristics when None)
        """
        self.keep_first = keep_first
        self.keep_last = keep_last
        self.max_important = max_important
        self.threshold = threshold
        self.scorer = scorer or ImportanceScorer()

    def compress(self, messages: Sequence[Entry]) -> CompressionResult:
        """
        Compress a history that is longer than the threshold.

        Returns:
            CompressionResult; ratio is (original - final) / original
        """
        messages = list(messages)
        original = len(messages)
        tokens_before = estimate_message_tokens(messages)

        if original <= self.threshold:
            return CompressionResult(
                messages=messages,
                was_compressed=False,
                ratio=0.0,
                original_count=original,
                compressed_count=original,
                tokens_before=tokens_before,
                tokens_after=tokens_before,
            )

        head_end = min(self.keep_first, original)
        tail_start = max(head_end, original - self.keep_last)

        head = messages[:head_end]
        middle = messages[head_end:tail_start]
        tail = messages[tail_start:]

        important = self.find_important(middle)

        result: List[Entry] = head + important
        if len(middle) > len(important):
            result.append(CompressionMarker(
                dropped_count=len(middle) - len(important),
                timestamp=middle[-1].timestamp,
            ))
        result += tail

        return CompressionResult(
            messages=result,
            was_compressed=True,
            ratio=(original - len(result)) / original,
            original_count=original,
            compressed_count=len(result),
            tokens_before=tokens_before,
            tokens_after=estimate_message_tokens(result),
        )

    def find_important(self, messages: Sequence[Entry]) -> List[Entry]:
        """Top max_important messages by score, in their original order."""
        if self.max_important <= 0:
            return []
        scored = [(i, self.scorer.score(m)) for i, m in enumerate(messages)]
        # Stable sort: equal scores keep the earlier message
        scored.sort(key=lambda x: x[1], reverse=True)
        keep = sorted(i for i, _ in scored[:self.max_important])
        return [messages[i] for i in keep]

    def get_stats(self) -> dict:
        return {
            "threshold": self.threshold,
            "keep_first": self.keep_first,
            "keep_last": self.keep_last,
            "max_important": self.max_important,
        }
