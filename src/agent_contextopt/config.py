"""
Optimizer configuration for agent-contextopt.
"""

from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional
import os
import yaml


CONFIG_SECTION = "optimizer"
ENV_SUMMARY_URL = "CONTEXTOPT_SUMMARY_URL"
ENV_API_KEY = "CONTEXTOPT_API_KEY"


@dataclass
class OptimizerConfig:
    """Configuration for the context optimization pipeline."""

    # Compression
    compress_threshold: int = 20           # Compress only above this many messages
    keep_first: int = 2                    # Head kept verbatim
    keep_last: int = 10                    # Tail kept verbatim
    max_important: int = 3                 # Middle messages rescued by importance

    # Summarization
    summarize_min_chars: int = 4000        # Summarize only above this much text
    summary_keep_first: int = 2
    summary_keep_last: int = 5
    summary_target_reduction: float = 0.55
    summary_detailed_reduction: float = 0.40
    summary_max_attempts: int = 2
    summary_base_delay: float = 1.0        # Seconds, doubled per retry
    summary_cache_size: int = 100
    summary_cache_policy: str = "fifo"     # "fifo" or "lru"
    summary_endpoint: Optional[str] = None
    summary_timeout: float = 30.0

    # Reference inspection
    default_window: int = 10
    full_conversation_window: int = 25
    broad_context_window: int = 15
    reference_tail: int = 5                # Recent messages added to specific references

    # Relevance ranking
    relevance_recent_count: int = 10
    relevance_max_chunk_tokens: int = 4000
    relevance_threshold: float = 0.7
    relevance_recency_seconds: float = 60.0
    relevance_recency_boost: float = 0.2
    max_tokens_per_request: int = 8000
    token_budget_fraction: float = 0.6

    # Linked contexts
    linked_max_contexts: int = 2
    linked_recent: int = 5
    linked_max_important: int = 2
    linked_max_messages: int = 5

    # Logging
    log_path: Optional[str] = None         # JSONL event log directory, None disables

    def __post_init__(self):
        if self.summary_cache_policy not in ("fifo", "lru"):
            raise ValueError(f"Unknown cache policy: {self.summary_cache_policy}")
        if not 0.0 < self.token_budget_fraction <= 1.0:
            raise ValueError("token_budget_fraction must be in (0, 1]")
        if self.summary_max_attempts < 1:
            raise ValueError("summary_max_attempts must be at least 1")

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "OptimizerConfig":
        """Load config from YAML file or return defaults."""
        if not config_path:
            default_paths = [
                "./contextopt.yaml",
                str(Path.home() / ".contextopt" / "config.yaml"),
            ]
            for path in default_paths:
                if Path(path).exists():
                    config_path = path
                    break

        if config_path and Path(config_path).exists():
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}

            if CONFIG_SECTION in data:
                data = data[CONFIG_SECTION] or {}

            known = {f.name for f in fields(cls)}
            config = cls(**{k: v for k, v in data.items() if k in known})
        else:
            config = cls()

        if not config.summary_endpoint:
            config.summary_endpoint = os.getenv(ENV_SUMMARY_URL) or None
        return config

    def to_dict(self) -> dict:
        """Export config to dict."""
        return asdict(self)

    def save(self, path: str):
        """Save config to YAML file."""
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.dump({CONFIG_SECTION: self.to_dict()}, f, default_flow_style=False)
