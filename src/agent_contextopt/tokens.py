"""
Token estimation and message-slice fingerprints.

One estimator is used everywhere in the package: whitespace word
count times 1.3, rounded up.
"""

import math
from typing import Iterable, Sequence

TOKENS_PER_WORD = 1.3


def estimate_tokens(text: str) -> int:
    """Rough token estimation (1.3 tokens per whitespace-separated word)."""
    if not text:
        return 0
    return math.ceil(len(text.split()) * TOKENS_PER_WORD)


def estimate_message_tokens(messages: Iterable) -> int:
    """Token estimate for the joined text of several messages."""
    return estimate_tokens(" ".join(m.text for m in messages))


def total_text_length(messages: Iterable) -> int:
    """Total characters of message text."""
    return sum(len(m.text or "") for m in messages)


def _epoch_ms(ts) -> int:
    return int(ts.timestamp() * 1000)


def fingerprint(messages: Sequence) -> str:
    """
    Cache key for a message slice: count plus boundary timestamps.

    Two slices with the same count and the same first and last
    timestamps are treated as the same input.
    """
    if not messages:
        return "0--"
    return f"{len(messages)}-{_epoch_ms(messages[0].timestamp)}-{_epoch_ms(messages[-1].timestamp)}"
