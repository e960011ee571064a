"""
AI-backed summarization for context compaction.

Condenses the middle of a long history into a single SummaryMarker
while the opening and the most recent messages stay verbatim.
"""

import math
import os
import time
from typing import Callable, List, Optional, Sequence

from ..config import ENV_API_KEY, OptimizerConfig
from ..exceptions import SummarizationError
from ..logger import OptimizationLogger, warn
from ..tokens import fingerprint, total_text_length
from ..types import DetailLevel, Entry, Role, SummarizationResult, SummaryMarker
from .base import SummarizationBackend, SummaryRequest
from .cache import BoundedCache
from .retry import Result, retry_with_backoff


ROLE_LABELS = {
    Role.USER: "User",
    Role.MODEL: "AI",
    Role.SYSTEM: "System",
}

INSTRUCTIONS = {
    DetailLevel.DETAILED: (
        "Create a comprehensive summary that preserves important details, examples, "
        "explanations, and context. Include specific information that might be "
        "referenced later."
    ),
    DetailLevel.CONCISE: "Create a concise summary focusing on key points and main topics discussed.",
}

MAX_CHARS_PER_MESSAGE = 1000


def format_for_summary(messages: Sequence[Entry]) -> str:
    """Serialize messages as 'Role: text [Files: n]' blocks separated by blank lines."""
    lines = []
    for msg in messages:
        files = f" [Files: {len(msg.files)}]" if msg.files else ""
        lines.append(f"{ROLE_LABELS[msg.role]}: {msg.text[:MAX_CHARS_PER_MESSAGE]}{files}")
    return "\n\n".join(lines)


class MessageSummarizer:
    """
    Summarizes the middle of a conversation through a backend.

    Results are cached by fingerprint (message count plus first and
    last timestamps), so repeating the same slice makes no external
    call. Backend failures are retried with backoff; if every attempt
    fails, summarize() returns a Result carrying a SummarizationError
    and the caller keeps its unsummarized messages.
    """

    def __init__(
        self,
        backend: SummarizationBackend,
        cache: Optional[BoundedCache] = None,
        keep_first: int = 2,
        keep_last: int = 5,
        min_chars: int = 4000,
        target_reduction: float = 0.55,
        detailed_reduction: float = 0.40,
        max_attempts: int = 2,
        base_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        logger: Optional[OptimizationLogger] = None,
    ):
        """
        Initialize summarizer.

        Args:
            backend: Summarization capability
            cache: Shared result cache (a private 100-entry cache when None)
            keep_first: Messages kept verbatim at the start
            keep_last: Messages kept verbatim at the end
            min_chars: Only summarize when total text exceeds this
            target_reduction: Reduction asked for concise summaries
            detailed_reduction: Reduction asked for detailed summaries
            max_attempts: Backend calls before giving up
            base_delay: Seconds before the first retry, doubled after
            sleep: Delay function (injected by tests)
            logger: Event logger
        """
        self.backend = backend
        self.cache = cache if cache is not None else BoundedCache()
        self.keep_first = keep_first
        self.keep_last = keep_last
        self.min_chars = min_chars
        self.target_reduction = target_reduction
        self.detailed_reduction = detailed_reduction
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.sleep = sleep
        self.logger = logger or OptimizationLogger()

    def summarize(self, messages: Sequence[Entry], detail_level: DetailLevel = DetailLevel.CONCISE) -> Result:
        """
        Summarize the middle slice of messages.

        Returns:
            Result whose value is a SummarizationResult, or whose error
            is a SummarizationError after all attempts failed
        """
        messages = list(messages)
        detail_level = DetailLevel(detail_level)
        head_end = min(self.keep_first, len(messages))
        tail_start = max(head_end, len(messages) - self.keep_last)
        middle = messages[head_end:tail_start]

        if not middle or total_text_length(messages) <= self.min_chars:
            return Result(value=self._unchanged(messages), attempts=0)

        key = fingerprint(messages)
        cached = self.cache.get(key)
        if cached is not None:
            self.logger.log_summarization(cached.original_count, cached.summarized_count, cached.ratio, True)
            return Result(value=self._copy(cached, cache_hit=True), attempts=0)

        request = self.build_request(middle, detail_level)
        outcome = retry_with_backoff(
            lambda: self.backend.summarize(request),
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            retry_on=(SummarizationError,),
            sleep=self.sleep,
            on_failure=lambda attempt, e: warn(f"Summarization attempt {attempt} failed: {e}"),
        )
        if not outcome.ok:
            error = SummarizationError(
                f"Summarization failed after {outcome.attempts} attempts: {outcome.error}",
                attempts=outcome.attempts,
                cause=outcome.error,
            )
            self.logger.log_summarization_failed(str(outcome.error), outcome.attempts)
            return Result(error=error, attempts=outcome.attempts)

        summary = outcome.value
        summarized: List[Entry] = (
            messages[:head_end]
            + [SummaryMarker(original_count=len(middle), text=summary, timestamp=middle[-1].timestamp)]
            + messages[tail_start:]
        )
        original_length = total_text_length(messages)
        result = SummarizationResult(
            messages=summarized,
            was_summarized=True,
            ratio=(original_length - total_text_length(summarized)) / original_length,
            original_count=len(messages),
            summarized_count=len(summarized),
            cache_hit=False,
            summary=summary,
        )
        self.cache.put(key, result)
        self.logger.log_summarization(result.original_count, result.summarized_count, result.ratio, False)
        return Result(value=self._copy(result, cache_hit=False), attempts=outcome.attempts)

    def build_request(self, middle: Sequence[Entry], detail_level: DetailLevel) -> SummaryRequest:
        """Request for the middle slice at the given detail level."""
        text = format_for_summary(middle)
        max_length = math.floor(len(text) * (1 - self.target_reduction))
        if detail_level == DetailLevel.DETAILED:
            reduction = self.detailed_reduction
            max_length = math.floor(max_length * 1.5)
        else:
            reduction = self.target_reduction
        return SummaryRequest(
            text=text,
            target_reduction=reduction,
            max_length=max_length,
            detail_level=detail_level,
            instructions=INSTRUCTIONS[detail_level],
        )

    def _unchanged(self, messages: List[Entry]) -> SummarizationResult:
        return SummarizationResult(
            messages=messages,
            was_summarized=False,
            ratio=0.0,
            original_count=len(messages),
            summarized_count=len(messages),
        )

    def _copy(self, result: SummarizationResult, cache_hit: bool) -> SummarizationResult:
        return SummarizationResult(
            messages=list(result.messages),
            was_summarized=result.was_summarized,
            ratio=result.ratio,
            original_count=result.original_count,
            summarized_count=result.summarized_count,
            cache_hit=cache_hit,
            summary=result.summary,
        )

    def clear_cache(self):
        self.cache.clear()

    def get_stats(self) -> dict:
        return {
            "target_reduction": self.target_reduction,
            "detailed_reduction": self.detailed_reduction,
            "max_attempts": self.max_attempts,
            "keep_first": self.keep_first,
            "keep_last": self.keep_last,
            **self.cache.stats(),
        }


def create_summarizer(
    config: Optional[OptimizerConfig] = None,
    backend: Optional[SummarizationBackend] = None,
    api_key: Optional[str] = None,
    logger: Optional[OptimizationLogger] = None,
) -> Optional[MessageSummarizer]:
    """
    Factory function to create a summarizer from config.

    Uses the injected backend, or an HTTP backend pointed at
    config.summary_endpoint. Returns None when neither is available.

    Args:
        config: Optimizer config (defaults when None)
        backend: Explicit backend, bypasses the HTTP endpoint
        api_key: Bearer token, or CONTEXTOPT_API_KEY from the environment
        logger: Event logger
    """
    config = config or OptimizerConfig()

    if backend is None:
        if not config.summary_endpoint:
            return None
        from .http_backend import HttpSummarizationBackend
        backend = HttpSummarizationBackend(
            endpoint=config.summary_endpoint,
            api_key=api_key or os.getenv(ENV_API_KEY) or None,
            timeout=config.summary_timeout,
        )

    return MessageSummarizer(
        backend=backend,
        cache=BoundedCache(max_size=config.summary_cache_size, policy=config.summary_cache_policy),
        keep_first=config.summary_keep_first,
        keep_last=config.summary_keep_last,
        min_chars=config.summarize_min_chars,
        target_reduction=config.summary_target_reduction,
        detailed_reduction=config.summary_detailed_reduction,
        max_attempts=config.summary_max_attempts,
        base_delay=config.summary_base_delay,
        logger=logger,
    )
