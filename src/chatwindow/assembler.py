"""ChatAssembler: persona + ranked knowledge + history -> one budgeted request."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from pydantic import BaseModel, Field

from .config import WindowConfig
from .normalizer import normalize_text
from .packer import SystemPromptPacker
from .provider import ChatMessage, ChatRequest, ChatResponse, LLMProvider, Speaker, Turn
from .token_counter import TokenCounter
from .window import WindowSelector

logger = logging.getLogger(__name__)


class ModelProfile(BaseModel):
    """The chat-relevant settings of a user-defined model."""

    name: str
    system_prompt: str = ""
    chat_model: str = "gpt-3.5-turbo"
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_context_turns: int | None = Field(default=None, gt=0)
    context_budget: int = Field(default=3000, gt=0)
    knowledge_budget: int = Field(default=2000, gt=0)


class ChatAssembler:
    """Builds the request sent to the completion backend for one chat turn.

    Knowledge snippets are packed into the system message first (bounded by
    ``knowledge_budget``), then the conversation is windowed under
    ``context_budget`` with that system message retained.
    """

    def __init__(
        self,
        counter: TokenCounter,
        provider: LLMProvider | None = None,
        config: WindowConfig | None = None,
    ) -> None:
        self._selector = WindowSelector(counter, config)
        self._packer = SystemPromptPacker(counter, config)
        self._provider = provider

    def build_request(
        self,
        profile: ModelProfile,
        history: Sequence[Turn],
        snippets: Sequence[str] = (),
    ) -> ChatRequest:
        """Build the request for *history*.

        A leading system turn in *history* (as emitted by
        :attr:`ChatHistory.turns`) is appended to the profile persona.
        """
        history_prompt, turns = _recent(profile, history)
        knowledge = ""
        if snippets:
            knowledge = self._packer.pack(snippets, profile.chat_model, profile.knowledge_budget)
        prompt = _with_persona(profile, history_prompt, knowledge, turns)
        messages = self._selector.select(prompt, profile.chat_model, profile.context_budget)
        return _request(profile, messages)

    async def abuild_request(
        self,
        profile: ModelProfile,
        history: Sequence[Turn],
        snippets: Sequence[str] = (),
    ) -> ChatRequest:
        history_prompt, turns = _recent(profile, history)
        knowledge = ""
        if snippets:
            knowledge = await self._packer.apack(
                snippets, profile.chat_model, profile.knowledge_budget
            )
        prompt = _with_persona(profile, history_prompt, knowledge, turns)
        messages = await self._selector.aselect(
            prompt, profile.chat_model, profile.context_budget
        )
        return _request(profile, messages)

    async def complete(
        self,
        profile: ModelProfile,
        history: Sequence[Turn],
        snippets: Sequence[str] = (),
    ) -> ChatResponse:
        """Build the request and send it; usage on the response is for metering."""
        if self._provider is None:
            msg = "ChatAssembler was created without a provider"
            raise RuntimeError(msg)
        request = await self.abuild_request(profile, history, snippets)
        response = await self._provider.chat(request)
        if response.usage is not None:
            logger.info(
                "model %s: %d prompt + %d completion tokens",
                profile.name, response.usage.prompt_tokens, response.usage.completion_tokens,
            )
        return response


def _recent(profile: ModelProfile, history: Sequence[Turn]) -> tuple[str, list[Turn]]:
    """Split off a leading system turn and cap the remaining active turns."""
    history_prompt = ""
    if history and history[0].speaker == Speaker.SYSTEM:
        if not history[0].deleted:
            history_prompt = normalize_text(history[0].text)
        history = history[1:]
    if any(t.speaker == Speaker.SYSTEM for t in history):
        msg = "system turns are only allowed at the start of the history"
        raise ValueError(msg)
    active = [t for t in history if not t.deleted]
    if profile.max_context_turns is not None:
        active = active[-profile.max_context_turns :]
    return history_prompt, active


def _with_persona(
    profile: ModelProfile, history_prompt: str, knowledge: str, turns: list[Turn]
) -> list[Turn]:
    persona = normalize_text(profile.system_prompt)
    parts = [p for p in (persona, history_prompt, knowledge) if p]
    if not parts:
        return turns
    return [Turn(speaker=Speaker.SYSTEM, text="\n".join(parts)), *turns]


def _request(profile: ModelProfile, messages: list[ChatMessage]) -> ChatRequest:
    return ChatRequest(
        model=profile.chat_model,
        messages=messages,
        temperature=profile.temperature,
    )
