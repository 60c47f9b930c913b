"""Append-only chat history with soft deletion and a turn cap."""

from __future__ import annotations

from typing import Any

from .cancel import CancellationToken
from .provider import ChatMessage, Speaker, Turn
from .window import WindowSelector


class ChatHistory:
    """Stores the turns of one conversation in order.

    The system prompt is held separately and always emitted first. Deleted
    turns stay stored but are skipped by :attr:`turns`. ``max_turns`` caps
    how many of the most recent non-system turns :attr:`turns` exposes.
    """

    def __init__(self, max_turns: int | None = None) -> None:
        if max_turns is not None and max_turns <= 0:
            msg = "max_turns must be positive"
            raise ValueError(msg)
        self._turns: list[Turn] = []
        self._max_turns = max_turns
        self._system_prompt: str | None = None

    @property
    def system_prompt(self) -> str | None:
        return self._system_prompt

    def set_system_prompt(self, prompt: str | None) -> None:
        self._system_prompt = prompt or None

    def add_human(self, text: str) -> None:
        self._turns.append(Turn(speaker=Speaker.HUMAN, text=text))

    def add_ai(self, text: str) -> None:
        self._turns.append(Turn(speaker=Speaker.AI, text=text))

    def delete(self, index: int) -> None:
        """Soft-delete the stored turn at *index* (negative indices allowed)."""
        turn = self._turns[index]
        self._turns[index] = turn.model_copy(update={"deleted": True})

    @property
    def stored(self) -> list[Turn]:
        """Every stored turn, deleted ones included."""
        return list(self._turns)

    @property
    def turns(self) -> list[Turn]:
        """Active turns, system prompt first, capped to ``max_turns``."""
        active = [t for t in self._turns if not t.deleted]
        if self._max_turns is not None:
            active = active[-self._max_turns :]
        if self._system_prompt:
            return [Turn(speaker=Speaker.SYSTEM, text=self._system_prompt), *active]
        return active

    def window(
        self,
        selector: WindowSelector,
        model: str,
        budget: int,
        cancel_token: CancellationToken | None = None,
    ) -> list[ChatMessage]:
        """Select the messages of this conversation that fit *budget*."""
        return selector.select(self.turns, model, budget, cancel_token)

    def summary(self) -> dict[str, Any]:
        """Return a summary of the conversation state."""
        return {
            "stored_turns": len(self._turns),
            "active_turns": sum(1 for t in self._turns if not t.deleted),
            "max_turns": self._max_turns,
            "has_system_prompt": self._system_prompt is not None,
        }
