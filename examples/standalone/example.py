#!/usr/bin/env python3
"""
Standalone example of agent-contextopt usage.

Run from this directory:
    python example.py
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
import sys

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from agent_contextopt import ContextOptimizer, Message, OptimizerConfig, Role
from agent_contextopt.summarization import SummarizationBackend, create_summarizer


class EchoBackend(SummarizationBackend):
    """Offline stand-in for the summary service: keeps the first sentence of each turn."""

    def summarize(self, request):
        lines = [line.split(".")[0] for line in request.text.split("\n\n")]
        return "; ".join(lines)[: request.max_length]


def build_history(start):
    topics = ["photosynthesis", "cell respiration", "mitochondria", "osmosis", "enzymes"]
    history = []
    for i in range(30):
        topic = topics[i % len(topics)]
        if i % 2 == 0:
            text = f"Can you explain {topic} in more depth? " + "I want the details. " * 20
            role = Role.USER
        else:
            text = f"Sure. {topic.capitalize()} works step by step. " + "Here is more background. " * 30
            role = Role.MODEL
        history.append(Message(role=role, text=text, timestamp=start + timedelta(minutes=i)))
    return history


def main():
    start = datetime.now(timezone.utc) - timedelta(hours=1)
    history = build_history(start)

    config = OptimizerConfig(log_path="./example-logs")
    optimizer = ContextOptimizer(config)

    print("=== agent-contextopt Example ===\n")

    print("--- Compression only ---\n")
    result = optimizer.optimize(history)
    print(f"  method: {result.method.value}")
    print(f"  {result.diagnostics['original_count']} -> {result.diagnostics['final_count']} messages")
    print(f"  tokens: {result.diagnostics['tokens_before']} -> {result.diagnostics['tokens_after']}")

    print("\n--- Reference query ---\n")
    query = "As mentioned in the first message, how does that relate to osmosis?"
    result = optimizer.optimize(history, user_query=query)
    print(result.diagnostics["explanation"])

    print("\n--- Hybrid with summarization ---\n")
    optimizer.summarizer = create_summarizer(config, backend=EchoBackend(), logger=optimizer.logger)
    result = optimizer.optimize(history, user_query="Can you recap everything we discussed?")
    print(f"  method: {result.method.value}")
    for entry in result.messages:
        print(f"  [{entry.role.value}] {entry.text[:70]}...")

    print("\n--- Relevance ranking ---\n")
    result = optimizer.optimize(history, user_query="mitochondria energy", mode="semantic")
    print(f"  method: {result.method.value}")
    print(f"  chunks analyzed: {result.diagnostics['chunks_analyzed']}")
    print(f"  relevant chunks: {result.diagnostics['relevant_chunks']}")

    print("\nStats:")
    for k, v in optimizer.get_stats()["log"].items():
        print(f"  {k}: {v}")

    print("\n✓ Example complete!")


if __name__ == "__main__":
    main()
