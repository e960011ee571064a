"""Tests for reference inspection, importance scoring and compression."""

import pytest
from datetime import datetime, timedelta, timezone
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from agent_contextopt import CompressionMarker, DetailLevel, FileRef, Message, Role, Strategy
from agent_contextopt.selection import ImportanceScorer, MessageCompressor, ReferenceInspector
from agent_contextopt.types import is_chronological


BASE = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_history(n, text="Message {i}"):
    return [
        Message(
            role=Role.USER if i % 2 == 0 else Role.MODEL,
            text=text.format(i=i),
            timestamp=BASE + timedelta(minutes=i),
        )
        for i in range(n)
    ]


class TestReferenceInspector:
    """Test query classification and index resolution."""

    @pytest.fixture
    def inspector(self):
        return ReferenceInspector()

    @pytest.fixture
    def history(self):
        return make_history(30)

    def test_first_message_reference(self, inspector, history):
        analysis = inspector.inspect("as mentioned in the first message", history)
        assert analysis.strategy == Strategy.SPECIFIC_MESSAGES
        assert 0 in analysis.referenced_indices
        assert analysis.has_message_references

    def test_full_conversation(self, inspector, history):
        analysis = inspector.inspect("Can you summarize our entire conversation?", history)
        assert analysis.strategy == Strategy.FULL_CONVERSATION
        assert analysis.recommended_window_size == 25
        assert analysis.summary_detail == DetailLevel.DETAILED

    def test_full_conversation_short_history(self, inspector):
        analysis = inspector.inspect("recap everything we discussed", make_history(8))
        assert analysis.strategy == Strategy.FULL_CONVERSATION
        assert analysis.recommended_window_size == 8

    def test_default_when_nothing_matches(self, inspector, history):
        analysis = inspector.inspect("What is the capital of France?", history)
        assert analysis.strategy == Strategy.NORMAL
        assert analysis.recommended_window_size == 10
        assert analysis.summary_detail == DetailLevel.CONCISE
        assert analysis.referenced_indices == []

    def test_numbered_reference(self, inspector, history):
        analysis = inspector.inspect("Go back to message number 3 please", history)
        assert analysis.strategy == Strategy.SPECIFIC_MESSAGES
        assert analysis.referenced_indices == [2]

    def test_cardinal_word_reference(self, inspector, history):
        analysis = inspector.inspect("look at message three", history)
        assert analysis.referenced_indices == [2]

    def test_numeral_out_of_range_is_ignored(self, inspector):
        analysis = inspector.inspect("what about message 40?", make_history(5))
        assert analysis.strategy == Strategy.SPECIFIC_MESSAGES
        assert analysis.referenced_indices == []

    def test_ordinals_up_to_tenth(self, inspector, history):
        analysis = inspector.inspect("Explain the seventh message again", history)
        assert analysis.referenced_indices == [6]

    def test_previous_response(self, inspector, history):
        analysis = inspector.inspect("What did you mean in the previous response?", history)
        assert analysis.strategy == Strategy.SPECIFIC_MESSAGES
        assert analysis.referenced_indices == [28, 29]

    def test_above_means_last_five(self, inspector, history):
        analysis = inspector.inspect("Expand on what you said above", history)
        assert analysis.referenced_indices == [25, 26, 27, 28, 29]

    def test_last_n_messages_is_a_count(self, inspector, history):
        analysis = inspector.inspect("Compare the ideas in the last 3 messages", history)
        assert analysis.referenced_indices == [27, 28, 29]

    def test_case_insensitive(self, inspector, history):
        analysis = inspector.inspect("AS MENTIONED IN THE FIRST MESSAGE", history)
        assert analysis.referenced_indices == [0]

    def test_broad_context(self, inspector, history):
        analysis = inspector.inspect("Give me an overall view of photosynthesis", history)
        assert analysis.strategy == Strategy.NORMAL
        assert analysis.needs_broad_context
        assert analysis.summary_detail == DetailLevel.DETAILED
        assert analysis.recommended_window_size == 15

    def test_specific_window_size(self, inspector, history):
        analysis = inspector.inspect("as mentioned in the first message", history)
        assert analysis.recommended_window_size == 15

    def test_empty_query_and_history(self, inspector):
        analysis = inspector.inspect("", [])
        assert analysis.strategy == Strategy.NORMAL

    def test_recommend_specific(self, inspector, history):
        analysis = inspector.inspect("as mentioned in the first message", history)
        rec = inspector.recommend(analysis, history)
        assert rec.include_indices == [0, 1, 25, 26, 27, 28, 29]

    def test_recommend_full(self, inspector, history):
        analysis = inspector.inspect("summarize our whole chat", history)
        rec = inspector.recommend(analysis, history)
        assert rec.include_indices == list(range(25))

    def test_recommend_normal(self, inspector, history):
        analysis = inspector.inspect("hello there", history)
        rec = inspector.recommend(analysis, history)
        assert rec.include_indices == list(range(20, 30))

    def test_explain(self, inspector, history):
        analysis = inspector.inspect("as mentioned in the first message", history)
        text = inspector.explain(analysis, inspector.recommend(analysis, history))
        assert "Strategy: specific_messages" in text
        assert "[0, 1, 25, 26, 27, 28, 29]" in text


class TestImportanceScorer:
    """Test the weighted importance heuristic."""

    @pytest.fixture
    def scorer(self):
        return ImportanceScorer()

    def _msg(self, text, role=Role.USER, files=()):
        return Message(role=role, text=text, timestamp=BASE, files=files)

    def test_short_user_message(self, scorer):
        assert scorer.score(self._msg("hello")) == pytest.approx(1.05)

    def test_short_model_message(self, scorer):
        assert scorer.score(self._msg("hello", role=Role.MODEL)) == pytest.approx(0.05)

    def test_question(self, scorer):
        assert scorer.score(self._msg("why?")) == pytest.approx(0.04 + 3 + 1)

    def test_error_keywords_count_once(self, scorer):
        text = "error problem"
        assert scorer.score(self._msg(text, role=Role.SYSTEM)) == pytest.approx(len(text) / 100 + 4)

    def test_important_keywords(self, scorer):
        text = "remember this because"
        assert scorer.score(self._msg(text, role=Role.SYSTEM)) == pytest.approx(len(text) / 100 + 4)

    def test_educational_keywords(self, scorer):
        text = "an example step"
        assert scorer.score(self._msg(text, role=Role.SYSTEM)) == pytest.approx(len(text) / 100 + 3)

    def test_length_is_capped(self, scorer):
        assert scorer.score(self._msg("x" * 2000, role=Role.SYSTEM)) == pytest.approx(5)

    def test_long_model_answer(self, scorer):
        text = "z" * 250
        assert scorer.score(self._msg(text, role=Role.MODEL)) == pytest.approx(2.5 + 2)

    def test_files(self, scorer):
        msg = self._msg("see", role=Role.SYSTEM, files=(FileRef("notes.pdf"),))
        assert scorer.score(msg) == pytest.approx(0.03 + 3)

    def test_empty_keyword_list_disables_bonus(self):
        scorer = ImportanceScorer(important_keywords=[])
        text = "remember this because"
        msg = Message(role=Role.SYSTEM, text=text, timestamp=BASE)
        assert scorer.score(msg) == pytest.approx(len(text) / 100)

    def test_salient(self, scorer):
        assert scorer.is_salient(self._msg("ok?"))
        assert scorer.is_salient(self._msg("this is important"))
        assert scorer.is_salient(self._msg("y" * 101))
        assert not scorer.is_salient(self._msg("ok"))


class TestMessageCompressor:
    """Test deterministic compression."""

    @pytest.fixture
    def compressor(self):
        return MessageCompressor()

    def test_identity_at_threshold(self, compressor):
        history = make_history(20)
        result = compressor.compress(history)
        assert not result.was_compressed
        assert result.messages == history
        assert result.ratio == 0

    def test_identity_small(self, compressor):
        for n in (0, 1, 5, 19):
            history = make_history(n)
            assert compressor.compress(history).messages == history

    def test_short_messages_compress_to_sixteen(self, compressor):
        history = make_history(25)
        result = compressor.compress(history)
        assert result.was_compressed
        assert len(result.messages) <= 16
        assert len(result.messages) == 16
        assert result.ratio == pytest.approx(9 / 25)
        assert result.ratio > 0

    def test_boundaries_preserved(self, compressor):
        history = make_history(40)
        result = compressor.compress(history)
        assert result.messages[:2] == history[:2]
        assert result.messages[-10:] == history[-10:]

    def test_marker_counts_dropped(self, compressor):
        history = make_history(25)
        result = compressor.compress(history)
        markers = [m for m in result.messages if isinstance(m, CompressionMarker)]
        assert len(markers) == 1
        assert markers[0].dropped_count == 10
        assert result.messages.index(markers[0]) == 5
        assert "10 messages compressed" in markers[0].text

    def test_important_messages_rescued(self, compressor):
        history = make_history(30)
        history[7] = Message(Role.USER, "I get an error, why does this fail?", history[7].timestamp)
        history[12] = Message(Role.USER, "Remember the formula because it is important", history[12].timestamp)
        result = compressor.compress(history)
        assert history[7] in result.messages
        assert history[12] in result.messages
        assert result.messages.index(history[7]) < result.messages.index(history[12])
        assert is_chronological(result.messages)

    def test_idempotent(self, compressor):
        first = compressor.compress(make_history(50))
        second = compressor.compress(first.messages)
        assert not second.was_compressed
        assert second.messages == first.messages

    def test_no_marker_when_nothing_dropped(self):
        compressor = MessageCompressor(keep_last=17)
        history = make_history(21)
        result = compressor.compress(history)
        assert result.was_compressed
        assert not any(isinstance(m, CompressionMarker) for m in result.messages)
        assert result.messages == history

    def test_stats(self, compressor):
        assert compressor.get_stats()["threshold"] == 20
