"""Tests for configuration, the summarizer factory and message types."""

import pytest
from datetime import datetime, timezone
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from agent_contextopt import (
    CompressionMarker,
    LinkedContext,
    Message,
    OptimizerConfig,
    Role,
    SummaryMarker,
    ValidationError,
)
from agent_contextopt.config import ENV_SUMMARY_URL
from agent_contextopt.summarization import HttpSummarizationBackend, create_summarizer


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    """No config files or endpoint env var leak in from the host."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv(ENV_SUMMARY_URL, raising=False)
    return tmp_path


class TestOptimizerConfig:
    """Test config defaults and YAML persistence."""

    def test_defaults(self, isolated):
        config = OptimizerConfig.load()
        assert config.compress_threshold == 20
        assert config.keep_first == 2
        assert config.keep_last == 10
        assert config.summarize_min_chars == 4000
        assert config.summary_cache_size == 100
        assert config.summary_cache_policy == "fifo"
        assert config.max_tokens_per_request == 8000
        assert config.summary_endpoint is None

    def test_load_nested_section(self, isolated):
        path = isolated / "custom.yaml"
        path.write_text(
            "optimizer:\n"
            "  keep_last: 6\n"
            "  summary_cache_policy: lru\n"
            "  unknown_option: 3\n"
        )
        config = OptimizerConfig.load(str(path))
        assert config.keep_last == 6
        assert config.summary_cache_policy == "lru"
        assert config.keep_first == 2

    def test_load_flat_file_from_cwd(self, isolated):
        (isolated / "contextopt.yaml").write_text("compress_threshold: 30\n")
        assert OptimizerConfig.load().compress_threshold == 30

    def test_save_and_load(self, isolated):
        path = isolated / "nested" / "config.yaml"
        original = OptimizerConfig(keep_last=7, summary_endpoint="https://summaries.test/run")
        original.save(str(path))

        loaded = OptimizerConfig.load(str(path))
        assert loaded.keep_last == 7
        assert loaded.summary_endpoint == "https://summaries.test/run"
        assert loaded.to_dict() == original.to_dict()

    def test_endpoint_from_env(self, isolated, monkeypatch):
        monkeypatch.setenv(ENV_SUMMARY_URL, "https://env.test/summary")
        assert OptimizerConfig.load().summary_endpoint == "https://env.test/summary"

    def test_invalid_policy(self):
        with pytest.raises(ValueError):
            OptimizerConfig(summary_cache_policy="random")

    def test_invalid_budget_fraction(self):
        with pytest.raises(ValueError):
            OptimizerConfig(token_budget_fraction=1.5)

    def test_invalid_max_attempts(self):
        with pytest.raises(ValueError, match="summary_max_attempts"):
            OptimizerConfig(summary_max_attempts=0)


class TestCreateSummarizer:
    """Test the summarizer factory."""

    def test_no_endpoint(self):
        assert create_summarizer(OptimizerConfig()) is None

    def test_http_backend(self):
        config = OptimizerConfig(summary_endpoint="https://summaries.test/run", summary_cache_policy="lru")
        summarizer = create_summarizer(config, api_key="secret")
        assert isinstance(summarizer.backend, HttpSummarizationBackend)
        assert summarizer.cache.policy == "lru"
        assert summarizer.max_attempts == 2


class TestMessageTypes:
    """Test message parsing and serialization."""

    def test_from_dict(self):
        message = Message.from_dict({
            "role": "assistant",
            "text": "Hello",
            "timestamp": "2024-01-01T12:00:00Z",
            "flags": {"isCompressed": True},
        })
        assert message.role == Role.MODEL
        assert message.is_compressed
        assert message.timestamp == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_naive_timestamp_is_utc(self):
        message = Message(Role.USER, "hi", datetime(2024, 1, 1, 12, 0))
        assert message.timestamp.tzinfo is not None
        assert message.timestamp == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_invalid_role(self):
        with pytest.raises(ValidationError):
            Message.from_dict({"role": "robot", "text": "hi", "timestamp": 0})

    def test_marker_kinds(self):
        ts = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert Message(Role.USER, "hi", ts).to_dict()["kind"] == "message"
        assert CompressionMarker(3, ts).to_dict()["kind"] == "compression_marker"
        assert SummaryMarker(4, "short", ts).to_dict()["kind"] == "summary_marker"
        assert CompressionMarker(3, ts).role == Role.SYSTEM

    def test_linked_context_from_dict(self):
        ctx = LinkedContext.from_any({"chat_id": 7, "messages": [{"role": "user", "text": "a", "timestamp": 0}]})
        assert ctx.chat_id == "7"
        assert ctx.subject == ""
        assert isinstance(ctx.messages[0], Message)

    def test_linked_context_missing_id(self):
        with pytest.raises(ValidationError):
            LinkedContext.from_any({"messages": []})
