"""Tests for token-counting oracles and their validation."""

import math
from unittest.mock import patch

import pytest

from chatwindow.errors import OracleFailureError
from chatwindow.provider import ChatMessage, ChatRole
from chatwindow.token_counter import (
    CharRatioCounter,
    TiktokenCounter,
    acount_tokens,
    check_count,
    count_tokens,
    get_token_counter,
)


def _msgs(*contents: str) -> list[ChatMessage]:
    return [ChatMessage(role=ChatRole.USER, content=c) for c in contents]


class _WordEncoding:
    def encode(self, text: str) -> list[str]:
        return text.split()


# ---------------------------------------------------------------------------
# CharRatioCounter
# ---------------------------------------------------------------------------


def test_char_ratio_counts_ceil_of_chars():
    counter = CharRatioCounter()
    assert counter.count("m", _msgs("a" * 8)) == 2
    assert counter.count("m", _msgs("a" * 9)) == 3
    assert counter.count("m", []) == 0


def test_char_ratio_sums_across_messages_with_overhead():
    counter = CharRatioCounter(chars_per_token=2, overhead_per_message=4)
    assert counter.count("m", _msgs("abcd", "ef")) == 3 + 8


def test_char_ratio_requires_positive_ratio():
    with pytest.raises(ValueError, match="chars_per_token must be positive"):
        CharRatioCounter(chars_per_token=0)


# ---------------------------------------------------------------------------
# TiktokenCounter
# ---------------------------------------------------------------------------


def test_tiktoken_counter_adds_chat_framing():
    with patch("chatwindow.token_counter.tiktoken.encoding_for_model", return_value=_WordEncoding()):
        counter = TiktokenCounter()
        # priming 3 + per message (3 + role 1 + content words)
        assert counter.count("gpt-4", _msgs("one two", "three")) == 3 + (3 + 1 + 2) + (3 + 1 + 1)
        assert counter.count("gpt-4", []) == 0


def test_tiktoken_counter_unknown_model_falls_back():
    with (
        patch("chatwindow.token_counter.tiktoken.encoding_for_model", side_effect=KeyError("x")),
        patch("chatwindow.token_counter.tiktoken.get_encoding", return_value=_WordEncoding()) as get_enc,
    ):
        counter = TiktokenCounter()
        assert counter.count("my-finetune", _msgs("a b c")) == 3 + 3 + 1 + 3
        get_enc.assert_called_once_with("cl100k_base")
        # cached per model
        counter.count("my-finetune", _msgs("d"))
        get_enc.assert_called_once()


def test_tiktoken_counter_pinned_encoding():
    with patch("chatwindow.token_counter.tiktoken.get_encoding", return_value=_WordEncoding()) as get_enc:
        counter = TiktokenCounter(encoding_name="o200k_base")
        get_enc.assert_called_once_with("o200k_base")
        assert counter.count("anything", _msgs("x y")) == 3 + 3 + 1 + 2


def test_factory_selects_backend():
    assert isinstance(get_token_counter("chars"), CharRatioCounter)
    assert isinstance(get_token_counter(" TikToken "), TiktokenCounter)
    with pytest.raises(ValueError, match="Unknown token counter"):
        get_token_counter("bpe")


# ---------------------------------------------------------------------------
# Oracle call validation
# ---------------------------------------------------------------------------


def test_check_count_accepts_non_negative_numbers():
    assert check_count(0) == 0
    assert check_count(12) == 12
    assert check_count(7.0) == 7


@pytest.mark.parametrize("bad", [-1, math.inf, math.nan, "12", None, True])
def test_check_count_rejects_unusable_values(bad):
    with pytest.raises(OracleFailureError):
        check_count(bad)


def test_count_tokens_wraps_oracle_exceptions():
    class Broken:
        def count(self, model, messages):
            raise RuntimeError("tokenizer crashed")

    with pytest.raises(OracleFailureError, match="tokenizer crashed") as info:
        count_tokens(Broken(), "m", _msgs("x"))
    assert isinstance(info.value.__cause__, RuntimeError)


def test_count_tokens_rejects_async_oracle():
    class AsyncCounter:
        async def count(self, model, messages):
            return 1

    with pytest.raises(OracleFailureError, match="asynchronous"):
        count_tokens(AsyncCounter(), "m", _msgs("x"))


@pytest.mark.asyncio
async def test_acount_tokens_accepts_sync_and_async_oracles():
    class AsyncCounter:
        async def count(self, model, messages):
            return 5

    assert await acount_tokens(AsyncCounter(), "m", _msgs("x")) == 5
    assert await acount_tokens(CharRatioCounter(), "m", _msgs("abcd")) == 1
