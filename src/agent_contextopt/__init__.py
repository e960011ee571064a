"""
agent-contextopt: Conversation Context Optimization

Decides which prior messages to hand to the next model call so the
call fits a token budget while keeping what the query needs:
- Reference inspection ("as mentioned in the first message")
- Importance-based compression with a compression marker
- AI summarization with caching and retry, degrading on failure
- Relevance ranking of older message chunks against the query
- Linked conversation trimming

Usage:
    from agent_contextopt import ContextOptimizer, OptimizerConfig

    optimizer = ContextOptimizer(OptimizerConfig.load("./contextopt.yaml"))
    result = optimizer.optimize(messages, linked_contexts, user_query="...")
    if result.degraded:
        ...  # summarization failed, compressed history was used
"""

from .config import OptimizerConfig
from .exceptions import ContextOptimizerError, ValidationError, SummarizationError
from .optimizer import ContextOptimizer
from .types import (
    Role,
    Strategy,
    DetailLevel,
    Method,
    FileRef,
    Message,
    CompressionMarker,
    SummaryMarker,
    LinkedContext,
    Analysis,
    OptimizationResult,
)

__version__ = "0.1.0"
__all__ = [
    "ContextOptimizer",
    "OptimizerConfig",
    "ContextOptimizerError",
    "ValidationError",
    "SummarizationError",
    "Role",
    "Strategy",
    "DetailLevel",
    "Method",
    "FileRef",
    "Message",
    "CompressionMarker",
    "SummaryMarker",
    "LinkedContext",
    "Analysis",
    "OptimizationResult",
]
