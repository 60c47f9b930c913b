"""Greedy packing of ranked knowledge snippets into one system message."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from .cancel import CancellationToken
from .config import OverflowPolicy, WindowConfig
from .normalizer import normalize_text
from .provider import ChatMessage, ChatRole
from .telemetry import trace_prompt_pack
from .token_counter import TokenCounter, acount_tokens, count_tokens
from .window import check_budget

logger = logging.getLogger(__name__)


class SystemPromptPacker:
    """Accumulates snippets, most relevant first, until the budget is reached.

    Each snippet is included whole or not at all. The result is the
    newline-joined prefix of the input, trailing newline stripped.
    """

    def __init__(self, counter: TokenCounter, config: WindowConfig | None = None) -> None:
        self._counter = counter
        self._config = config or WindowConfig()

    def pack(
        self,
        snippets: Sequence[str],
        model: str,
        budget: int,
        cancel_token: CancellationToken | None = None,
    ) -> str:
        budget = check_budget(budget)
        with trace_prompt_pack(model, budget) as span:
            buffer = ""
            for index, snippet in enumerate(snippets):
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()
                previous = buffer
                buffer += f"{normalize_text(snippet)}\n"
                tokens = count_tokens(self._counter, model, _as_system(buffer))
                if tokens >= budget:
                    buffer = self._on_overflow(buffer, previous, index, len(snippets), tokens, budget)
                    break
            span.set_attribute("chatwindow.packed_chars", len(buffer))
            return buffer[:-1] if buffer.endswith("\n") else buffer

    async def apack(
        self,
        snippets: Sequence[str],
        model: str,
        budget: int,
        cancel_token: CancellationToken | None = None,
    ) -> str:
        """Async variant of :meth:`pack`; the counter may return awaitables."""
        budget = check_budget(budget)
        with trace_prompt_pack(model, budget) as span:
            buffer = ""
            for index, snippet in enumerate(snippets):
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()
                previous = buffer
                buffer += f"{normalize_text(snippet)}\n"
                tokens = await acount_tokens(self._counter, model, _as_system(buffer))
                if tokens >= budget:
                    buffer = self._on_overflow(buffer, previous, index, len(snippets), tokens, budget)
                    break
            span.set_attribute("chatwindow.packed_chars", len(buffer))
            return buffer[:-1] if buffer.endswith("\n") else buffer

    def _on_overflow(
        self,
        buffer: str,
        previous: str,
        index: int,
        available: int,
        tokens: int,
        budget: int,
    ) -> str:
        if self._config.overflow_policy == OverflowPolicy.STRICT:
            logger.debug(
                "pack: kept %d of %d snippets, snippet %d reached %d/%d tokens",
                index, available, index, tokens, budget,
            )
            return previous
        logger.debug(
            "pack: kept %d of %d snippets at %d/%d tokens", index + 1, available, tokens, budget
        )
        return buffer


def _as_system(buffer: str) -> list[ChatMessage]:
    return [ChatMessage(role=ChatRole.SYSTEM, content=buffer)]


def pack_system_prompt(
    snippets: Sequence[str],
    model: str,
    budget: int,
    counter: TokenCounter,
    config: WindowConfig | None = None,
    cancel_token: CancellationToken | None = None,
) -> str:
    """Functional shortcut for ``SystemPromptPacker(counter, config).pack(...)``."""
    return SystemPromptPacker(counter, config).pack(snippets, model, budget, cancel_token)


async def apack_system_prompt(
    snippets: Sequence[str],
    model: str,
    budget: int,
    counter: TokenCounter,
    config: WindowConfig | None = None,
    cancel_token: CancellationToken | None = None,
) -> str:
    """Functional shortcut for ``SystemPromptPacker(counter, config).apack(...)``."""
    return await SystemPromptPacker(counter, config).apack(snippets, model, budget, cancel_token)
