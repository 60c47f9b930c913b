"""Chat window selection: the newest turns that fit a token budget.

The selector maps stored turns onto backend messages, keeps a leading
system message unconditionally, and walks the remaining turns from the
newest to the oldest, asking the token counter after every addition. The
walk stops the first time the count reaches the budget. Whether the turn
that reached it is kept is decided by :class:`OverflowPolicy`.

Short conversations skip token counting altogether: when the total
normalized character length is below ``budget * fast_path_ratio`` the whole
history is returned as is.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from .cancel import CancellationToken
from .config import OverflowPolicy, WindowConfig
from .errors import InvalidBudgetError
from .provider import ChatMessage, ChatRole, Turn
from .telemetry import trace_window_select
from .token_counter import TokenCounter, acount_tokens, count_tokens

logger = logging.getLogger(__name__)

__all__ = [
    "OverflowPolicy",
    "WindowSelector",
    "aselect_window",
    "check_budget",
    "select_window",
]


def check_budget(budget: object) -> int:
    """Return *budget* if it is a positive int, else raise InvalidBudgetError."""
    if isinstance(budget, bool) or not isinstance(budget, int) or budget <= 0:
        raise InvalidBudgetError(budget)
    return budget


class WindowSelector:
    """Selects a budget-respecting suffix of a conversation."""

    def __init__(self, counter: TokenCounter, config: WindowConfig | None = None) -> None:
        self._counter = counter
        self._config = config or WindowConfig()

    @property
    def config(self) -> WindowConfig:
        return self._config

    def select(
        self,
        history: Sequence[Turn],
        model: str,
        budget: int,
        cancel_token: CancellationToken | None = None,
    ) -> list[ChatMessage]:
        """Return the messages to send for *history* under *budget* tokens."""
        budget = check_budget(budget)
        with trace_window_select(model, budget) as span:
            messages = self._map(history)
            shortcut = self._shortcut(messages, budget)
            if shortcut is not None:
                span.set_attribute("chatwindow.fast_path", True)
                return shortcut

            system_prompt, rest = _split_system(messages)
            chats: list[ChatMessage] = []
            candidate: list[ChatMessage] = []
            for msg in reversed(rest):
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()
                previous = candidate
                chats.insert(0, msg)
                candidate = _with_system(system_prompt, chats)
                tokens = count_tokens(self._counter, model, candidate)
                if tokens >= budget:
                    return self._on_overflow(candidate, previous, len(chats), len(rest), tokens, budget)
            logger.debug("window: all %d turns fit under budget %d", len(rest), budget)
            return candidate

    async def aselect(
        self,
        history: Sequence[Turn],
        model: str,
        budget: int,
        cancel_token: CancellationToken | None = None,
    ) -> list[ChatMessage]:
        """Async variant of :meth:`select`; the counter may return awaitables.

        Counter calls are awaited one at a time. Task cancellation surfaces
        as ``asyncio.CancelledError`` with no partial result.
        """
        budget = check_budget(budget)
        with trace_window_select(model, budget) as span:
            messages = self._map(history)
            shortcut = self._shortcut(messages, budget)
            if shortcut is not None:
                span.set_attribute("chatwindow.fast_path", True)
                return shortcut

            system_prompt, rest = _split_system(messages)
            chats: list[ChatMessage] = []
            candidate: list[ChatMessage] = []
            for msg in reversed(rest):
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()
                previous = candidate
                chats.insert(0, msg)
                candidate = _with_system(system_prompt, chats)
                tokens = await acount_tokens(self._counter, model, candidate)
                if tokens >= budget:
                    return self._on_overflow(candidate, previous, len(chats), len(rest), tokens, budget)
            logger.debug("window: all %d turns fit under budget %d", len(rest), budget)
            return candidate

    # -- helpers -------------------------------------------------------------

    @staticmethod
    def _map(history: Sequence[Turn]) -> list[ChatMessage]:
        # Soft-deleted turns are never sent.
        return [turn.to_message() for turn in history if not turn.deleted]

    def _shortcut(self, messages: list[ChatMessage], budget: int) -> list[ChatMessage] | None:
        """Return a result that needs no counting, or None to run the walk."""
        if not messages:
            return []
        total_len = sum(len(m.content) for m in messages)
        if total_len < budget * self._config.fast_path_ratio:
            logger.debug("window: fast path, %d chars under budget %d", total_len, budget)
            return messages
        if len(messages) == 1 and messages[0].role == ChatRole.SYSTEM:
            return messages
        return None

    def _on_overflow(
        self,
        candidate: list[ChatMessage],
        previous: list[ChatMessage],
        kept: int,
        available: int,
        tokens: int,
        budget: int,
    ) -> list[ChatMessage]:
        # A lone most-recent turn is kept even under STRICT.
        if self._config.overflow_policy == OverflowPolicy.STRICT and kept > 1:
            logger.debug(
                "window: kept %d of %d turns, dropped the turn reaching %d/%d tokens",
                kept - 1, available, tokens, budget,
            )
            return previous
        logger.debug(
            "window: kept %d of %d turns at %d/%d tokens", kept, available, tokens, budget
        )
        return candidate


def _split_system(
    messages: list[ChatMessage],
) -> tuple[ChatMessage | None, list[ChatMessage]]:
    if messages and messages[0].role == ChatRole.SYSTEM:
        return messages[0], messages[1:]
    return None, messages


def _with_system(system_prompt: ChatMessage | None, chats: list[ChatMessage]) -> list[ChatMessage]:
    if system_prompt is None:
        return list(chats)
    return [system_prompt, *chats]


def select_window(
    history: Sequence[Turn],
    model: str,
    budget: int,
    counter: TokenCounter,
    config: WindowConfig | None = None,
    cancel_token: CancellationToken | None = None,
) -> list[ChatMessage]:
    """Functional shortcut for ``WindowSelector(counter, config).select(...)``."""
    return WindowSelector(counter, config).select(history, model, budget, cancel_token)


async def aselect_window(
    history: Sequence[Turn],
    model: str,
    budget: int,
    counter: TokenCounter,
    config: WindowConfig | None = None,
    cancel_token: CancellationToken | None = None,
) -> list[ChatMessage]:
    """Functional shortcut for ``WindowSelector(counter, config).aselect(...)``."""
    return await WindowSelector(counter, config).aselect(history, model, budget, cancel_token)
