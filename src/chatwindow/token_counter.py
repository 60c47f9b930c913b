"""Token-counting oracles with pluggable backends.

The selector and packer never tokenize text themselves; they ask a
:class:`TokenCounter` how many tokens an exact message list costs for a
given model. Two backends ship here:

- :class:`CharRatioCounter`: deterministic character-ratio estimate, no
  external state. Used as the fake oracle in tests.
- :class:`TiktokenCounter`: real BPE counts via ``tiktoken`` including the
  chat-completion framing overhead.
"""

from __future__ import annotations

import inspect
import math
from collections.abc import Awaitable, Sequence
from numbers import Real
from typing import Protocol

import tiktoken

from .errors import OracleFailureError
from .provider import ChatMessage

_FALLBACK_ENCODING = "cl100k_base"


class TokenCounter(Protocol):
    """Counts tokens for a message list as the backend would bill it.

    ``count`` may return an ``int`` or, for asynchronous oracles, an
    awaitable of ``int``. Only the ``aselect``/``apack`` entry points accept
    the awaitable form.
    """

    def count(self, model: str, messages: Sequence[ChatMessage]) -> int | Awaitable[int]: ...


class CharRatioCounter:
    """Character-based token estimation: ``ceil(chars / chars_per_token)``.

    ``overhead_per_message`` adds a fixed cost per message for role and
    formatting tokens; it defaults to zero so that counts stay easy to
    reason about in tests.
    """

    def __init__(self, chars_per_token: int = 4, overhead_per_message: int = 0) -> None:
        if chars_per_token <= 0:
            msg = "chars_per_token must be positive"
            raise ValueError(msg)
        self._ratio = chars_per_token
        self._overhead = overhead_per_message

    def count(self, model: str, messages: Sequence[ChatMessage]) -> int:
        chars = sum(len(m.content) for m in messages)
        return math.ceil(chars / self._ratio) + self._overhead * len(messages)


class TiktokenCounter:
    """Accurate token counting using tiktoken.

    The encoding is resolved per model with ``tiktoken.encoding_for_model``;
    models tiktoken does not know fall back to ``cl100k_base``. Passing
    ``encoding_name`` pins one encoding for every model.
    """

    TOKENS_PER_MESSAGE = 3
    REPLY_PRIMING = 3

    def __init__(self, encoding_name: str | None = None) -> None:
        self._pinned = tiktoken.get_encoding(encoding_name) if encoding_name else None
        self._by_model: dict[str, tiktoken.Encoding] = {}

    def _encoding(self, model: str) -> tiktoken.Encoding:
        if self._pinned is not None:
            return self._pinned
        enc = self._by_model.get(model)
        if enc is None:
            try:
                enc = tiktoken.encoding_for_model(model)
            except KeyError:
                enc = tiktoken.get_encoding(_FALLBACK_ENCODING)
            self._by_model[model] = enc
        return enc

    def count(self, model: str, messages: Sequence[ChatMessage]) -> int:
        if not messages:
            return 0
        enc = self._encoding(model)
        total = self.REPLY_PRIMING
        for msg in messages:
            total += self.TOKENS_PER_MESSAGE
            total += len(enc.encode(msg.role.value))
            total += len(enc.encode(msg.content))
        return total


def get_token_counter(name: str = "tiktoken", chars_per_token: int = 4) -> TokenCounter:
    """Build a counter by backend name (``"tiktoken"`` or ``"chars"``)."""
    key = name.strip().lower()
    if key == "tiktoken":
        return TiktokenCounter()
    if key == "chars":
        return CharRatioCounter(chars_per_token=chars_per_token)
    msg = f"Unknown token counter '{name}'. Valid values: chars, tiktoken"
    raise ValueError(msg)


# ---------------------------------------------------------------------------
# Oracle call helpers shared by the selector and packer
# ---------------------------------------------------------------------------


def check_count(value: object) -> int:
    """Validate an oracle result, raising :class:`OracleFailureError` if unusable."""
    if isinstance(value, bool) or not isinstance(value, Real):
        msg = f"token counter returned a non-numeric count: {value!r}"
        raise OracleFailureError(msg)
    if not math.isfinite(value) or value < 0:
        msg = f"token counter returned an invalid count: {value!r}"
        raise OracleFailureError(msg)
    return int(value)


def count_tokens(counter: TokenCounter, model: str, messages: Sequence[ChatMessage]) -> int:
    """Call a synchronous oracle once and validate its answer."""
    try:
        result = counter.count(model, list(messages))
    except Exception as exc:
        msg = f"token counter failed: {exc}"
        raise OracleFailureError(msg) from exc
    if inspect.isawaitable(result):
        if inspect.iscoroutine(result):
            result.close()
        msg = "token counter is asynchronous; use the async entry point"
        raise OracleFailureError(msg)
    return check_count(result)


async def acount_tokens(
    counter: TokenCounter, model: str, messages: Sequence[ChatMessage]
) -> int:
    """Call a sync or async oracle once, awaiting it if needed, and validate."""
    try:
        result = counter.count(model, list(messages))
        if inspect.isawaitable(result):
            result = await result
    except Exception as exc:
        msg = f"token counter failed: {exc}"
        raise OracleFailureError(msg) from exc
    return check_count(result)
