"""
Unit tests for token accounting helpers

tiktoken is patched out so the tests never download an encoding.
"""

import pytest
from unittest.mock import patch

from smartdocs.utils import tokens
from smartdocs.utils.tokens import (
    calculate_message_split,
    count_messages_tokens,
    estimate_text_tokens,
    estimate_token_savings,
    format_token_count,
    get_token_usage_percentage,
    get_usage_status,
    should_summarize,
)


def _fake_count(text, model=None):
    # One token per word keeps expectations readable
    return len(text.split()) if text else 0


@pytest.fixture
def word_tokens():
    with patch.object(tokens, "count_tokens", side_effect=_fake_count):
        yield


def _messages(n, words=10):
    return [
        {"role": "user" if i % 2 == 0 else "assistant", "content": " ".join(["word"] * words)}
        for i in range(n)
    ]


@pytest.mark.unit
class TestTokenHelpers:

    def test_estimate_rounds_up(self):
        assert estimate_text_tokens("") == 0
        assert estimate_text_tokens("abc") == 1
        assert estimate_text_tokens("abcdefgh") == 2
        assert estimate_text_tokens("abcdefghi") == 3

    def test_count_messages_adds_role_and_overhead(self, word_tokens):
        # content 10 + role 1 + overhead 4
        assert count_messages_tokens(_messages(1)) == 15
        assert count_messages_tokens(_messages(3)) == 45

    def test_count_messages_accepts_objects(self, word_tokens):
        class Msg:
            role = "user"
            content = "hello there"

        assert count_messages_tokens([Msg()]) == 2 + 1 + 4

    def test_should_summarize_needs_more_than_min_messages(self, word_tokens):
        # 10 huge messages are never summarized
        assert should_summarize(_messages(10, words=1000), "FREE") is False

    def test_should_summarize_over_threshold(self, word_tokens):
        # FREE threshold is 3000; 11 messages x 305 tokens
        assert should_summarize(_messages(11, words=300), "FREE") is True
        assert should_summarize(_messages(11, words=10), "FREE") is False

    def test_split_keeps_newest_minimum(self, word_tokens):
        messages = _messages(30, words=1000)
        to_keep, to_summarize = calculate_message_split(messages, "FREE")

        assert len(to_keep) == 10
        assert to_keep == messages[-10:]
        assert to_summarize == messages[:20]

    def test_split_keeps_everything_that_fits(self, word_tokens):
        messages = _messages(12, words=10)
        to_keep, to_summarize = calculate_message_split(messages, "ENTERPRISE")

        assert to_keep == messages
        assert to_summarize == []

    def test_estimate_token_savings(self, word_tokens):
        savings = estimate_token_savings(_messages(2), "short summary")
        assert savings["tokens_saved"] == 28
        assert savings["percentage_saved"] == 93.3

    def test_format_token_count(self):
        assert format_token_count(999) == "999 tokens"
        assert format_token_count(1500) == "1.5K tokens"
        assert format_token_count(2500000) == "2.5M tokens"

    def test_usage_percentage_and_status(self):
        assert get_token_usage_percentage(50, 0) == 0
        assert get_token_usage_percentage(150, 100) == 100
        assert get_usage_status(95) == "critical"
        assert get_usage_status(80) == "warning"
        assert get_usage_status(10) == "safe"
