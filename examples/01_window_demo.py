#!/usr/bin/env python3
"""01_window_demo.py: chatwindow selection and packing demo.

Builds a long conversation, packs ranked knowledge snippets into the system
message and prints what would be sent to the completion backend. The token
counter is selected via CHATWINDOW_TOKEN_COUNTER (tiktoken | chars).

Prerequisites:
    pip install -e .[dev]

Usage:
    python examples/01_window_demo.py
    CHATWINDOW_TOKEN_COUNTER=chars python examples/01_window_demo.py
    CHATWINDOW_OVERFLOW_POLICY=strict python examples/01_window_demo.py
"""

from __future__ import annotations

import asyncio

from chatwindow import (
    ChatAssembler,
    ChatHistory,
    ModelProfile,
    StubLLMProvider,
    WindowConfig,
    get_token_counter,
)


async def main() -> None:
    # ------------------------------------------------------------------
    # 1. Configuration is read once here and passed down explicitly.
    # ------------------------------------------------------------------
    config = WindowConfig.from_env()
    counter = get_token_counter(config.token_counter, config.chars_per_token)
    print(f"Counter: {config.token_counter}, overflow policy: {config.overflow_policy}")

    # ------------------------------------------------------------------
    # 2. A long conversation that will not fit the context budget.
    # ------------------------------------------------------------------
    history = ChatHistory()
    for i in range(40):
        history.add_human(f"Question {i}: how do I tune the   cache?\n\n\n" + "detail " * 40)
        history.add_ai(f"Answer {i}: raise the eviction threshold. " + "because " * 40)

    # ------------------------------------------------------------------
    # 3. A model profile with a persona and ranked knowledge.
    # ------------------------------------------------------------------
    profile = ModelProfile(
        name="cache-helper",
        system_prompt="You answer questions about the caching layer.",
        context_budget=800,
        knowledge_budget=60,
    )
    snippets = [
        "The cache evicts least-recently-used entries first.",
        "Eviction runs when memory use passes the configured threshold.",
        "Entries carry a TTL; expired entries are skipped on read.",
        "Statistics are exported every 30 seconds.",
    ]

    assembler = ChatAssembler(counter, provider=StubLLMProvider(), config=config)
    request = await assembler.abuild_request(profile, history.turns, snippets)

    print(f"Stored turns: {len(history.stored)}, sent messages: {len(request.messages)}")
    print("--- System message ---")
    print(request.messages[0].content)
    print("--- Newest sent turn ---")
    print(request.messages[-1].content[:80] + "...")

    # ------------------------------------------------------------------
    # 4. Send it; usage is what a billing layer would record.
    # ------------------------------------------------------------------
    response = await assembler.complete(profile, history.turns, snippets)
    print("--- Response ---")
    print(response.content)
    if response.usage is not None:
        print(f"Usage: {response.usage.prompt_tokens} prompt / {response.usage.completion_tokens} completion")


if __name__ == "__main__":
    asyncio.run(main())
