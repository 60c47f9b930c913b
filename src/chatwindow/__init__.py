"""chatwindow: token-budgeted context windows for chat completion backends."""

from __future__ import annotations

__version__ = "0.1.0"

from .assembler import ChatAssembler, ModelProfile
from .cancel import CancellationToken
from .config import BackendConfig, OverflowPolicy, WindowConfig
from .error_text import first_error_message
from .errors import (
    BackendError,
    ChatWindowError,
    ConfigError,
    InvalidBudgetError,
    OracleFailureError,
    SelectionCancelledError,
)
from .history import ChatHistory
from .normalizer import normalize_text
from .openai_provider import OpenAIChatProvider
from .packer import SystemPromptPacker, apack_system_prompt, pack_system_prompt
from .provider import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    ChatRole,
    LLMProvider,
    ProviderCapabilities,
    Speaker,
    StubLLMProvider,
    TokenUsage,
    Turn,
    role_for,
)
from .telemetry import TelemetryConfig, WindowTracer, install_tracer
from .token_counter import CharRatioCounter, TiktokenCounter, TokenCounter, get_token_counter
from .window import WindowSelector, aselect_window, select_window

__all__ = [
    "BackendConfig",
    "BackendError",
    "CancellationToken",
    "CharRatioCounter",
    "ChatAssembler",
    "ChatHistory",
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "ChatRole",
    "ChatWindowError",
    "ConfigError",
    "InvalidBudgetError",
    "LLMProvider",
    "ModelProfile",
    "OpenAIChatProvider",
    "OracleFailureError",
    "OverflowPolicy",
    "ProviderCapabilities",
    "SelectionCancelledError",
    "Speaker",
    "StubLLMProvider",
    "SystemPromptPacker",
    "TelemetryConfig",
    "TiktokenCounter",
    "TokenCounter",
    "TokenUsage",
    "Turn",
    "WindowConfig",
    "WindowSelector",
    "WindowTracer",
    "__version__",
    "aselect_window",
    "apack_system_prompt",
    "first_error_message",
    "get_token_counter",
    "install_tracer",
    "normalize_text",
    "pack_system_prompt",
    "role_for",
    "select_window",
]
