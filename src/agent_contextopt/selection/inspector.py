"""
Reference inspection: what part of the history does a query point at?

Detects references to specific messages ("as mentioned in the first
message", "message number 3"), requests covering the whole
conversation ("summarize everything") and requests for broad context
("overall", "comprehensive"), and turns them into an Analysis.
"""

import re
from enum import Enum
from typing import Dict, List, Sequence, Set, Tuple

from ..types import Analysis, DetailLevel, Recommendation, Strategy


class Category(str, Enum):
    MESSAGE_REFERENCE = "message_reference"
    FULL_CONVERSATION = "full_conversation"
    BROAD_CONTEXT = "broad_context"


_ORDINALS = "first|second|third|fourth|fifth|sixth|seventh|eighth|ninth|tenth"
_CARDINALS = "one|two|three|four|five|six|seven|eight|nine|ten"
_ITEM = "message|response|answer|reply|comment|discussion|explanation"
_WHOLE = "entire|complete|full|whole|all"
_THREAD = "conversation|chat|discussion|thread|history"

_PATTERN_SOURCES = [
    (Category.MESSAGE_REFERENCE, p) for p in (
        rf"\b(as per|according to|from|in)\s+(the\s+)?(above|previous|last|recent|earlier|{_ORDINALS})\s+({_ITEM})\b",
        rf"\b(in|from|as)\s+(the\s+)?(last|previous|above|earlier|recent)\s+(\d+\s+)?({_ITEM})s?\b",
        r"\b(as\s+you\s+)?(said|mentioned|explained|discussed|stated|told|wrote)\s+(above|before|earlier|previously|in\s+the\s+last|recently)\b",
        rf"\b(refer|referring|reference)\s+(to\s+)?(the\s+)?(above|previous|last|earlier|recent)\s+({_ITEM})\b",
        rf"\b(message|response|answer|reply|comment)\s+(number\s+)?(\d+|{_CARDINALS})\b",
        rf"\b({_ORDINALS})\s+({_ITEM})\b",
        rf"\bthe\s+(previous|last|above|earlier|prior)\s+({_ITEM})s?\b",
        rf"\b(next|following|subsequent)\s+({_ITEM})\b",
        rf"\b(back\s+to|return\s+to|continue\s+from)\s+(the\s+)?(previous|earlier|above|last)\s+({_ITEM})\b",
    )
] + [
    (Category.FULL_CONVERSATION, p) for p in (
        rf"\b(our\s+)?({_WHOLE})\s+({_THREAD})\b",
        r"\b(everything|all)\s+(we|you|i)\s+(discussed|talked|said|mentioned|covered)\b",
        r"\bsummarize\s+everything\b",
        rf"\b(from\s+the\s+)?(beginning|start)\s+(of\s+)?(our\s+|the\s+)?({_THREAD})\b",
    )
] + [
    (Category.BROAD_CONTEXT, p) for p in (
        r"\b(overall|generally|in\s+general|broadly|comprehensive|comprehensively)\b",
        r"\b(context|background|full\s+picture|big\s+picture|overall\s+view)\b",
        r"\b(detailed|thorough|in-depth)\s+(summary|overview|explanation|analysis)\b",
    )
]

# Evaluated in this order, in one pass over the query
PATTERNS: List[Tuple[Category, "re.Pattern"]] = [
    (category, re.compile(p, re.IGNORECASE)) for category, p in _PATTERN_SOURCES
]

_WORD_INDEX: Dict[str, int] = {
    **{w: i for i, w in enumerate(_ORDINALS.split("|"))},
    **{w: i for i, w in enumerate(_CARDINALS.split("|"))},
}
_COUNT_AFTER = re.compile(r"\b(last|previous|recent)\s+(\d+)\b", re.IGNORECASE)
_NUMERAL = re.compile(r"\d+")
_WORDS = re.compile(r"[a-z]+")


class ReferenceInspector:
    """
    Classifies a user query's need for specific or whole-conversation context.

    Pure and deterministic: never raises on any string input.
    """

    def __init__(
        self,
        default_window: int = 10,
        full_window: int = 25,
        broad_window: int = 15,
        reference_tail: int = 5,
    ):
        self.default_window = default_window
        self.full_window = full_window
        self.broad_window = broad_window
        self.reference_tail = reference_tail

    def classify(self, query: str) -> Dict[Category, List[str]]:
        """Matched text per category, in pattern order."""
        hits: Dict[Category, List[str]] = {c: [] for c in Category}
        for category, pattern in PATTERNS:
            hits[category].extend(m.group(0) for m in pattern.finditer(query))
        return hits

    def inspect(self, query: str, history: Sequence) -> Analysis:
        query = query or ""
        history_length = len(history)
        hits = self.classify(query)
        analysis = Analysis(recommended_window_size=self.default_window)

        if hits[Category.MESSAGE_REFERENCE]:
            analysis.has_message_references = True
            analysis.referenced_indices = self.resolve_references(
                hits[Category.MESSAGE_REFERENCE], history_length
            )
            analysis.strategy = Strategy.SPECIFIC_MESSAGES
            analysis.recommended_window_size = max(15, len(analysis.referenced_indices) + self.reference_tail)

        if hits[Category.FULL_CONVERSATION]:
            analysis.has_full_conversation_reference = True
            analysis.strategy = Strategy.FULL_CONVERSATION
            analysis.recommended_window_size = min(history_length, self.full_window)
            analysis.summary_detail = DetailLevel.DETAILED

        if hits[Category.BROAD_CONTEXT]:
            analysis.needs_broad_context = True
            analysis.summary_detail = DetailLevel.DETAILED
            analysis.recommended_window_size = max(analysis.recommended_window_size, self.broad_window)

        return analysis

    def resolve_references(self, references: Sequence[str], history_length: int) -> List[int]:
        """Map matched reference phrases to sorted 0-based history indices."""
        indices: Set[int] = set()
        last = history_length - 1

        for ref in references:
            text = ref.lower()
            words = set(_WORDS.findall(text))

            counted = _COUNT_AFTER.search(text)
            if counted:
                n = int(counted.group(2))
                indices.update(range(max(0, history_length - n), history_length))
            else:
                for numeral in _NUMERAL.findall(text):
                    n = int(numeral)
                    if 0 < n <= history_length:
                        indices.add(n - 1)

            for word in words:
                if word in _WORD_INDEX:
                    indices.add(_WORD_INDEX[word])

            if "last" in words or "previous" in words:
                indices.update(i for i in (last, last - 1) if i >= 0)

            if "above" in words or "earlier" in words:
                indices.update(range(max(0, history_length - 5), history_length))

        return sorted(i for i in indices if 0 <= i < history_length)

    def recommend(self, analysis: Analysis, history: Sequence) -> Recommendation:
        """Indices of the history to keep for this analysis."""
        n = len(history)
        include: Set[int] = set()

        if analysis.strategy == Strategy.SPECIFIC_MESSAGES:
            for idx in analysis.referenced_indices:
                include.update(range(max(0, idx - 1), min(n - 1, idx + 1) + 1))
            include.update(range(max(0, n - self.reference_tail), n))
        elif analysis.strategy == Strategy.FULL_CONVERSATION:
            include.update(range(min(n, analysis.recommended_window_size)))
        else:
            include.update(range(max(0, n - analysis.recommended_window_size), n))

        return Recommendation(
            include_indices=sorted(i for i in include if 0 <= i < n),
            strategy=analysis.strategy,
            summary_detail=analysis.summary_detail,
            context_window=analysis.recommended_window_size,
        )

    def explain(self, analysis: Analysis, recommendation: Recommendation) -> str:
        """Human-readable explanation for debugging."""
        lines = [
            "Context Analysis:",
            f"- Strategy: {analysis.strategy.value}",
            f"- Message References: {analysis.has_message_references}",
            f"- Full Conversation: {analysis.has_full_conversation_reference}",
            f"- Broad Context: {analysis.needs_broad_context}",
            f"- Summary Detail: {analysis.summary_detail.value}",
            f"- Recommended Messages: {analysis.recommended_window_size}",
            f"- Including Message Indices: [{', '.join(str(i) for i in recommendation.include_indices)}]",
        ]
        return "\n".join(lines)
