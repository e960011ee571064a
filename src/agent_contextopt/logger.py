"""
Logging utilities for context optimization.
"""

from pathlib import Path
from typing import Optional
import json
import sys
from datetime import datetime, timedelta


LOG_FILE = "optimization.jsonl"


def warn(message: str):
    """Report a recoverable problem on stderr."""
    print(f"Warning: {message}", file=sys.stderr)


class OptimizationLogger:
    """
    Logs optimizer activity to a JSONL file.

    Events:
    - optimization: one per optimize() call
    - inspection: reference inspector analysis
    - summarization: successful or cached summarization
    - summarization_failed: backend gave up after all attempts

    With no log path the logger is a no-op.
    """

    def __init__(self, log_path: Optional[str] = None):
        """
        Initialize logger.

        Args:
            log_path: Directory for optimization.jsonl, or None to disable
        """
        self.log_path = Path(log_path) if log_path else None
        if self.log_path:
            self.log_path.mkdir(parents=True, exist_ok=True)

    @property
    def enabled(self) -> bool:
        return self.log_path is not None

    def _log(self, entry: dict):
        if not self.log_path:
            return
        entry["timestamp"] = datetime.now().isoformat()
        with open(self.log_path / LOG_FILE, "a") as f:
            f.write(json.dumps(entry, default=str) + "\n")

    def log_inspection(self, query: str, analysis: dict):
        self._log({
            "event": "inspection",
            "query": query[:200],
            **analysis,
        })

    def log_summarization(self, original_count: int, summarized_count: int, ratio: float, cache_hit: bool):
        self._log({
            "event": "summarization",
            "original_count": original_count,
            "summarized_count": summarized_count,
            "ratio": ratio,
            "cache_hit": cache_hit,
        })

    def log_summarization_failed(self, error: str, attempts: int):
        self._log({
            "event": "summarization_failed",
            "error": error,
            "attempts": attempts,
        })

    def log_optimization(self, method: str, optimized: bool, diagnostics: dict):
        self._log({
            "event": "optimization",
            "method": method,
            "optimized": optimized,
            "original_count": diagnostics.get("original_count"),
            "final_count": diagnostics.get("final_count"),
            "tokens_before": diagnostics.get("tokens_before"),
            "tokens_after": diagnostics.get("tokens_after"),
            "degraded": diagnostics.get("degraded", False),
            "latency_ms": diagnostics.get("latency_ms"),
        })

    def get_stats(self, hours: int = 24) -> dict:
        """Get optimization statistics for the last N hours."""
        if not self.log_path:
            return {}
        log_file = self.log_path / LOG_FILE
        if not log_file.exists():
            return {}

        since = datetime.now() - timedelta(hours=hours)
        count = 0
        degraded = 0
        by_method = {}

        with open(log_file) as f:
            for line in f:
                entry = json.loads(line)
                if entry.get("event") != "optimization":
                    continue
                if datetime.fromisoformat(entry["timestamp"]) <= since:
                    continue
                count += 1
                if entry.get("degraded"):
                    degraded += 1
                method = entry.get("method", "unknown")
                by_method[method] = by_method.get(method, 0) + 1

        return {
            "optimization_count": count,
            "degraded_count": degraded,
            "by_method": by_method,
        }
