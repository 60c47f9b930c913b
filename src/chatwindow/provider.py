"""Chat data types and the completion-backend abstraction."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import StrEnum
from typing import assert_never

from pydantic import BaseModel, ConfigDict

from .normalizer import normalize_text

# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------


class Speaker(StrEnum):
    """Who produced a turn, as stored in a chat record."""

    HUMAN = "Human"
    AI = "AI"
    SYSTEM = "SYSTEM"


class ChatRole(StrEnum):
    """Role of a message participant."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


def role_for(speaker: Speaker) -> ChatRole:
    """Map a speaker tag onto the role the completion backend expects."""
    match speaker:
        case Speaker.HUMAN:
            return ChatRole.USER
        case Speaker.AI:
            return ChatRole.ASSISTANT
        case Speaker.SYSTEM:
            return ChatRole.SYSTEM
        case _:
            assert_never(speaker)


class ChatMessage(BaseModel):
    """Single message in a conversation."""

    role: ChatRole
    content: str


class Turn(BaseModel):
    """One entry of a stored conversation. Never mutated once created."""

    model_config = ConfigDict(frozen=True)

    speaker: Speaker
    text: str
    deleted: bool = False

    def to_message(self) -> ChatMessage:
        """Project onto the normalized, role-tagged message shape."""
        return ChatMessage(role=role_for(self.speaker), content=normalize_text(self.text))


class ProviderCapabilities(BaseModel):
    """Declares what a provider can do."""

    streaming: bool = False


class ChatRequest(BaseModel):
    """Request payload sent to an LLM provider."""

    model: str
    messages: list[ChatMessage]
    max_tokens: int | None = None
    temperature: float | None = None


class TokenUsage(BaseModel):
    """Token consumption metrics for a single request."""

    prompt_tokens: int
    completion_tokens: int

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class ChatResponse(BaseModel):
    """Response returned from an LLM provider."""

    content: str
    usage: TokenUsage | None = None


# ---------------------------------------------------------------------------
# LLMProvider ABC
# ---------------------------------------------------------------------------


class LLMProvider(ABC):
    """Abstract base class for completion backends."""

    @abstractmethod
    def name(self) -> str:
        """Return the canonical provider name (e.g. 'openai', 'stub')."""

    @abstractmethod
    def capabilities(self) -> ProviderCapabilities:
        """Describe what this provider supports."""

    @abstractmethod
    async def chat(self, request: ChatRequest) -> ChatResponse:
        """Send a chat completion request."""


# ---------------------------------------------------------------------------
# Stub implementation (for testing / offline development)
# ---------------------------------------------------------------------------


class StubLLMProvider(LLMProvider):
    """Returns canned responses without making real HTTP calls."""

    _CANNED = "This is a stub response for testing purposes."

    def __init__(self) -> None:
        self.requests: list[ChatRequest] = []

    def name(self) -> str:
        return "stub"

    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(streaming=False)

    async def chat(self, request: ChatRequest) -> ChatResponse:
        """Return a deterministic canned response and remember the request."""
        self.requests.append(request)
        prompt_tokens = sum(len(m.content.split()) for m in request.messages)
        reply = f"{self._CANNED} (model={request.model})"
        return ChatResponse(
            content=reply,
            usage=TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=len(reply.split()),
            ),
        )
