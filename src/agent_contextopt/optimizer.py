"""
Context optimizer for agent-contextopt.

Fits a long chat history (plus up to two linked conversations) into a
bounded context for the next model call:
- Reference inspection of the user query
- Message subset selection
- Importance-based compression
- AI summarization when the compressed text is still large
- Linked conversation trimming

Usage:
    from agent_contextopt import ContextOptimizer

    optimizer = ContextOptimizer()
    result = optimizer.optimize(messages, linked_contexts, user_query="...")

    result.messages          # Bounded history, chronological
    result.method            # none / compression / hybrid / semantic-optimization
    result.diagnostics       # What happened and why
"""

import time
from datetime import datetime
from typing import Any, Callable, List, Optional, Sequence

from .config import OptimizerConfig
from .exceptions import ValidationError
from .logger import OptimizationLogger
from .selection.compressor import MessageCompressor
from .selection.inspector import ReferenceInspector
from .selection.linked import LinkedContextOptimizer
from .selection.relevance import RelevanceRanker
from .summarization.summarizer import MessageSummarizer, create_summarizer
from .tokens import estimate_message_tokens, total_text_length
from .types import (
    Analysis,
    DetailLevel,
    Entry,
    LinkedContext,
    Method,
    OptimizationResult,
    coerce_messages,
)


MODES = ("hybrid", "semantic")


class ContextOptimizer:
    """
    Main context optimization orchestrator.

    Each optimize() call is independent; the summarizer's cache is the
    only state shared between calls.
    """

    def __init__(
        self,
        config: Optional[OptimizerConfig] = None,
        summarizer: Optional[MessageSummarizer] = None,
        logger: Optional[OptimizationLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize optimizer.

        Args:
            config: Optimizer config (defaults when None)
            summarizer: Summarizer to use; built from config.summary_endpoint
                when None, and skipped entirely if no endpoint is configured
            logger: Event logger (from config.log_path when None)
            clock: Returns "now" as an aware datetime, for relevance recency
        """
        self.config = config or OptimizerConfig()
        cfg = self.config
        self.logger = logger or OptimizationLogger(cfg.log_path)

        self.inspector = ReferenceInspector(
            default_window=cfg.default_window,
            full_window=cfg.full_conversation_window,
            broad_window=cfg.broad_context_window,
            reference_tail=cfg.reference_tail,
        )
        self.compressor = MessageCompressor(
            keep_first=cfg.keep_first,
            keep_last=cfg.keep_last,
            max_important=cfg.max_important,
            threshold=cfg.compress_threshold,
        )
        self.ranker = RelevanceRanker(
            recent_count=cfg.relevance_recent_count,
            keep_first=cfg.keep_first,
            max_chunk_tokens=cfg.relevance_max_chunk_tokens,
            relevance_threshold=cfg.relevance_threshold,
            recency_window=cfg.relevance_recency_seconds,
            recency_boost=cfg.relevance_recency_boost,
            total_budget=cfg.max_tokens_per_request,
            clock=clock,
        )
        self.linked_optimizer = LinkedContextOptimizer(
            max_contexts=cfg.linked_max_contexts,
            recent=cfg.linked_recent,
            max_important=cfg.linked_max_important,
            max_messages=cfg.linked_max_messages,
        )
        self.summarizer = summarizer if summarizer is not None else create_summarizer(cfg, logger=self.logger)

    def optimize(
        self,
        messages: Sequence[Any],
        linked_contexts: Optional[Sequence[Any]] = None,
        user_query: Optional[str] = None,
        mode: str = "hybrid",
    ) -> OptimizationResult:
        """
        Build a bounded context for the next model call.

        Args:
            messages: Chat history (Message objects or storage dicts)
            linked_contexts: Up to two auxiliary conversations
            user_query: The new user message, if any
            mode: "hybrid" (compress, then summarize) or "semantic"
                (relevance ranking against the query)

        Returns:
            OptimizationResult

        Raises:
            ValidationError: on malformed messages or linked contexts
        """
        started = time.perf_counter()
        if mode not in MODES:
            raise ValueError(f"Unknown optimization mode: {mode}")

        history = coerce_messages(messages)
        linked = self._coerce_linked(linked_contexts)
        query = user_query if isinstance(user_query, str) and user_query.strip() else None

        diagnostics = {
            "original_count": len(history),
            "tokens_before": estimate_message_tokens(history),
            "degraded": False,
            "analysis": None,
            "explanation": None,
        }

        # Step 1: what does the query need?
        analysis: Optional[Analysis] = None
        if query:
            analysis = self.inspector.inspect(query, history)
            diagnostics["analysis"] = analysis.to_dict()
            self.logger.log_inspection(query, analysis.to_dict())
        detail_level = analysis.summary_detail if analysis else DetailLevel.CONCISE
        diagnostics["detail_level"] = detail_level.value

        if mode == "semantic":
            ranking = self.ranker.optimize_by_relevance(
                history, query or "", self.config.token_budget_fraction
            )
            final_messages = ranking.messages
            method = ranking.method
            optimized = method == Method.SEMANTIC
            diagnostics.update(ranking.diagnostics)
        else:
            final_messages, method, optimized = self._hybrid(history, analysis, detail_level, diagnostics)

        final_linked = self.linked_optimizer.optimize(linked)

        diagnostics["final_count"] = len(final_messages)
        diagnostics["tokens_after"] = estimate_message_tokens(final_messages)
        diagnostics["latency_ms"] = (time.perf_counter() - started) * 1000

        self.logger.log_optimization(method.value, optimized, diagnostics)
        return OptimizationResult(
            messages=final_messages,
            linked_contexts=final_linked,
            optimized=optimized,
            method=method,
            diagnostics=diagnostics,
        )

    def select(self, history: List[Entry], analysis: Optional[Analysis], diagnostics: dict) -> List[Entry]:
        """Candidate subset of the history for this analysis."""
        if analysis is None:
            return list(history)

        recommendation = self.inspector.recommend(analysis, history)
        diagnostics["explanation"] = self.inspector.explain(analysis, recommendation)
        selected = [history[i] for i in recommendation.include_indices]
        if not selected:
            return history[-10:]
        return selected

    def _hybrid(self, history, analysis, detail_level, diagnostics):
        selected = self.select(history, analysis, diagnostics)
        diagnostics["selected_count"] = len(selected)

        # Step 3: compression
        compressed = self.compressor.compress(selected)
        diagnostics["compression_ratio"] = compressed.ratio
        final_messages = compressed.messages

        # Step 4: summarization, only when compression was not enough
        was_summarized = False
        diagnostics["cache_hit"] = False
        if (
            compressed.was_compressed
            and self.summarizer is not None
            and total_text_length(compressed.messages) > self.config.summarize_min_chars
        ):
            outcome = self.summarizer.summarize(compressed.messages, detail_level)
            if outcome.ok:
                summarized = outcome.value
                final_messages = summarized.messages
                was_summarized = summarized.was_summarized
                diagnostics["summarization_ratio"] = summarized.ratio
                diagnostics["cache_hit"] = summarized.cache_hit
            else:
                diagnostics["degraded"] = True
                diagnostics["summary_error"] = str(outcome.error)

        if was_summarized:
            method = Method.HYBRID
        elif compressed.was_compressed:
            method = Method.COMPRESSION
        else:
            method = Method.NONE
        return final_messages, method, compressed.was_compressed or was_summarized

    def _coerce_linked(self, linked_contexts) -> List[LinkedContext]:
        if linked_contexts is None:
            return []
        if not isinstance(linked_contexts, (list, tuple)):
            raise ValidationError(f"linked_contexts must be a list, got {type(linked_contexts).__name__}")
        return [LinkedContext.from_any(c) for c in linked_contexts]

    def clear_cache(self):
        if self.summarizer is not None:
            self.summarizer.clear_cache()

    def get_stats(self) -> dict:
        """Component parameters and cache statistics for monitoring."""
        return {
            "compressor": self.compressor.get_stats(),
            "summarizer": self.summarizer.get_stats() if self.summarizer else None,
            "log": self.logger.get_stats(),
        }
