"""
Relevance ranking of older messages against the current query.

Older messages are split into chunks, each chunk scored for keyword
overlap with the query plus a recency boost, and the most relevant
chunks are packed into a token budget.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Sequence, Set

from ..tokens import estimate_message_tokens, estimate_tokens
from ..types import Chunk, Entry, Method, RankingResult


STOPWORDS = {
    'the', 'a', 'an', 'is', 'are', 'was', 'were', 'be', 'been',
    'being', 'have', 'has', 'had', 'do', 'does', 'did', 'will',
    'would', 'could', 'should', 'may', 'might', 'must', 'shall',
    'can', 'need', 'dare', 'ought', 'used', 'to', 'of', 'in',
    'for', 'on', 'with', 'at', 'by', 'from', 'as', 'into',
    'through', 'during', 'before', 'after', 'above', 'below',
    'and', 'but', 'or', 'nor', 'so', 'yet', 'both', 'either',
    'neither', 'not', 'only', 'just', 'also', 'very', 'more',
}


def keywords(text: str) -> Set[str]:
    """
    Lowercase word tokens minus stopwords.

    Matching is on whole tokens, so plural and partial forms do not
    match ("cell" does not match "cells" or "cellular").
    """
    return set(re.findall(r'\b\w+\b', text.lower())) - STOPWORDS


class RelevanceRanker:
    """
    Semantic chunker and relevance-based selector.

    Formula:
        relevance = matched_query_keywords / query_keywords
                    + recency_boost (if any message is within recency_window)
        capped at 1.0

    Output: first keep_first messages, chunks above the threshold that
    fit the budget (chronological), then the recent tail, deduplicated.
    """

    def __init__(
        self,
        recent_count: int = 10,
        keep_first: int = 2,
        max_chunk_tokens: int = 4000,
        relevance_threshold: float = 0.7,
        recency_window: float = 60.0,
        recency_boost: float = 0.2,
        total_budget: int = 8000,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize ranker.

        Args:
            recent_count: Most recent messages always kept verbatim
            keep_first: Opening messages always kept
            max_chunk_tokens: Upper bound on chunk size
            relevance_threshold: Chunks must score strictly above this
            recency_window: Seconds within which a message counts as recent
            recency_boost: Added to chunks containing a recent message
            total_budget: Tokens available for the whole request
            clock: Returns "now" as an aware datetime (injected by tests)
        """
        self.recent_count = recent_count
        self.keep_first = keep_first
        self.max_chunk_tokens = max_chunk_tokens
        self.relevance_threshold = relevance_threshold
        self.recency_window = timedelta(seconds=recency_window)
        self.recency_boost = recency_boost
        self.total_budget = total_budget
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def relevance(self, messages: Sequence[Entry], query: str, now: Optional[datetime] = None) -> float:
        """Score one chunk of messages against the query, in [0, 1]."""
        now = now or self.clock()
        query_words = keywords(query)

        score = 0.0
        if query_words:
            chunk_words = set()
            for m in messages:
                chunk_words |= keywords(m.text)
            score = len(query_words & chunk_words) / len(query_words)

        if any(now - m.timestamp < self.recency_window for m in messages):
            score += self.recency_boost

        return min(score, 1.0)

    def chunk(self, messages: Sequence[Entry], query: str) -> List[Chunk]:
        """Split messages into consecutive chunks of at most max_chunk_tokens."""
        now = self.clock()
        chunks: List[Chunk] = []
        current: List[Entry] = []
        current_tokens = 0
        start = 0

        def flush():
            chunks.append(Chunk(
                messages=list(current),
                relevance=self.relevance(current, query, now),
                last_timestamp=current[-1].timestamp,
                start_index=start,
                tokens=estimate_message_tokens(current),
            ))

        for i, message in enumerate(messages):
            size = estimate_tokens(message.text)
            if current and current_tokens + size > self.max_chunk_tokens:
                flush()
                current, current_tokens, start = [], 0, i
            current.append(message)
            current_tokens += size

        if current:
            flush()
        return chunks

    def optimize_by_relevance(
        self,
        messages: Sequence[Entry],
        query: str,
        token_budget_fraction: float = 0.6,
    ) -> RankingResult:
        """
        Select relevant older messages under a token budget.

        Returns:
            RankingResult with method SEMANTIC, or NONE when there are no
            older messages to rank
        """
        messages = list(messages)
        query = query or ""
        recent = messages[-self.recent_count:] if self.recent_count > 0 else []
        older = messages[:len(messages) - len(recent)]

        if not older:
            return RankingResult(
                messages=recent,
                method=Method.NONE,
                diagnostics={
                    "tokens_used": estimate_message_tokens(recent),
                    "chunks_analyzed": 0,
                    "relevant_chunks": 0,
                },
            )

        chunks = self.chunk(older, query)
        ranked = sorted(chunks, key=lambda c: (-c.relevance, -c.last_timestamp.timestamp()))

        head = messages[:self.keep_first] if len(messages) > self.keep_first else []
        token_budget = int(self.total_budget * token_budget_fraction)
        budget = token_budget - estimate_message_tokens(head) - estimate_message_tokens(recent)

        selected: List[Chunk] = []
        for c in ranked:
            if c.relevance <= self.relevance_threshold:
                break
            if budget - c.tokens >= 0:
                selected.append(c)
                budget -= c.tokens

        selected.sort(key=lambda c: c.start_index)
        combined = list(head)
        for c in selected:
            combined.extend(c.messages)
        combined.extend(recent)
        result = self.deduplicate(combined)

        return RankingResult(
            messages=result,
            method=Method.SEMANTIC,
            diagnostics={
                "tokens_used": estimate_message_tokens(result),
                "token_budget": token_budget,
                "budget_remaining": budget,
                "chunks_analyzed": len(chunks),
                "relevant_chunks": sum(1 for c in chunks if c.relevance > self.relevance_threshold),
                "chunks_selected": len(selected),
            },
        )

    @staticmethod
    def deduplicate(messages: Sequence[Entry]) -> List[Entry]:
        """Drop repeats by (timestamp, first 50 chars) while preserving order."""
        seen = set()
        unique = []
        for m in messages:
            key = (m.timestamp, m.text[:50])
            if key in seen:
                continue
            seen.add(key)
            unique.append(m)
        return unique
