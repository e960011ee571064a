# Message selection: inspection, scoring, compression, ranking

from .inspector import ReferenceInspector, Category
from .importance import ImportanceScorer
from .compressor import MessageCompressor
from .relevance import RelevanceRanker
from .linked import LinkedContextOptimizer

__all__ = [
    "ReferenceInspector",
    "Category",
    "ImportanceScorer",
    "MessageCompressor",
    "RelevanceRanker",
    "LinkedContextOptimizer",
]
