"""Trimming of linked (auxiliary) conversations."""

from dataclasses import replace
from typing import List, Optional, Sequence

from ..types import LinkedContext
from .importance import ImportanceScorer


class LinkedContextOptimizer:
    """
    Keeps a short, useful tail of each linked conversation.

    Per context: the last `recent` messages plus up to `max_important`
    salient ones, deduplicated by text, in chronological order, capped
    at `max_messages`. Only the first `max_contexts` contexts are kept.
    Returns copies; the caller's contexts are never modified.
    """

    def __init__(
        self,
        max_contexts: int = 2,
        recent: int = 5,
        max_important: int = 2,
        max_messages: int = 5,
        scorer: Optional[ImportanceScorer] = None,
    ):
        self.max_contexts = max_contexts
        self.recent = recent
        self.max_important = max_important
        self.max_messages = max_messages
        self.scorer = scorer or ImportanceScorer()

    def optimize(self, contexts: Sequence[LinkedContext]) -> List[LinkedContext]:
        return [self.trim(ctx) for ctx in list(contexts)[:self.max_contexts]]

    def trim(self, context: LinkedContext) -> LinkedContext:
        messages = list(context.messages)
        n = len(messages)

        keep = set(range(max(0, n - self.recent), n))
        if self.max_important > 0:
            salient = [i for i, m in enumerate(messages) if self.scorer.is_salient(m)]
            keep.update(salient[-self.max_important:])

        seen_text = set()
        trimmed = []
        for i in sorted(keep):
            text = messages[i].text
            if text in seen_text:
                continue
            seen_text.add(text)
            trimmed.append(messages[i])

        if self.max_messages > 0:
            trimmed = trimmed[-self.max_messages:]
        return replace(context, messages=tuple(trimmed))
