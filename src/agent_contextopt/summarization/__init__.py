# Summarization: backends, cache, retry

from .base import SummarizationBackend, SummaryRequest
from .http_backend import HttpSummarizationBackend
from .cache import BoundedCache
from .retry import Result, retry_with_backoff
from .summarizer import MessageSummarizer, create_summarizer

__all__ = [
    "SummarizationBackend",       # Abstract base class
    "SummaryRequest",
    "HttpSummarizationBackend",   # httpx implementation
    "BoundedCache",
    "Result",
    "retry_with_backoff",
    "MessageSummarizer",
    "create_summarizer",          # Factory function
]
