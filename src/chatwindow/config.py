"""Explicit configuration objects, loaded from the environment by the entry point.

Nothing here is global: the process entry point builds a
:class:`WindowConfig` and a :class:`BackendConfig` once and hands them to the
selector, packer and completion client constructors.

Environment variables:
    - ``CHATWINDOW_FAST_PATH_RATIO``: length/budget ratio under which token
      counting is skipped (default ``0.5``, ``0`` disables the fast path)
    - ``CHATWINDOW_OVERFLOW_POLICY``: ``include`` (default) or ``strict``
    - ``CHATWINDOW_TOKEN_COUNTER``: ``tiktoken`` (default) or ``chars``
    - ``CHATWINDOW_CHARS_PER_TOKEN``: ratio used by the ``chars`` counter
    - ``CHATWINDOW_BASE_URL``, ``CHATWINDOW_API_KEY``,
      ``CHATWINDOW_TIMEOUT_SEC``, ``CHATWINDOW_MODEL``: completion backend
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from enum import StrEnum
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, Field, ValidationError

from .error_text import first_error_message
from .errors import ConfigError

_M = TypeVar("_M", bound=BaseModel)


class OverflowPolicy(StrEnum):
    """What to do with the turn or snippet whose addition reaches the budget."""

    INCLUDE = "include"  # keep it; the budget is a ceiling
    STRICT = "strict"  # drop it; the result stays under budget when possible


class WindowConfig(BaseModel):
    """Tuning knobs shared by the window selector and the system-prompt packer."""

    fast_path_ratio: float = Field(default=0.5, ge=0.0, le=1.0)
    overflow_policy: OverflowPolicy = OverflowPolicy.INCLUDE
    token_counter: Literal["chars", "tiktoken"] = "tiktoken"
    chars_per_token: int = Field(default=4, gt=0)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> WindowConfig:
        env = os.environ if environ is None else environ
        values = _collect(
            env,
            {
                "fast_path_ratio": "CHATWINDOW_FAST_PATH_RATIO",
                "overflow_policy": "CHATWINDOW_OVERFLOW_POLICY",
                "token_counter": "CHATWINDOW_TOKEN_COUNTER",
                "chars_per_token": "CHATWINDOW_CHARS_PER_TOKEN",
            },
        )
        return _validate(cls, values)


class BackendConfig(BaseModel):
    """Connection settings for an OpenAI-compatible completion backend."""

    base_url: str = "https://api.openai.com/v1"
    api_key: str = ""
    timeout: float = Field(default=60.0, gt=0)
    default_model: str = "gpt-3.5-turbo"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> BackendConfig:
        env = os.environ if environ is None else environ
        values = _collect(
            env,
            {
                "base_url": "CHATWINDOW_BASE_URL",
                "api_key": "CHATWINDOW_API_KEY",
                "timeout": "CHATWINDOW_TIMEOUT_SEC",
                "default_model": "CHATWINDOW_MODEL",
            },
        )
        return _validate(cls, values)


def _collect(env: Mapping[str, str], names: dict[str, str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for field, var in names.items():
        raw = env.get(var, "").strip()
        if raw:
            values[field] = raw.lower() if field in ("overflow_policy", "token_counter") else raw
    return values


def _validate(model: type[_M], values: dict[str, Any]) -> _M:
    try:
        return model.model_validate(values)
    except ValidationError as exc:
        errors = exc.errors()
        field = ".".join(str(p) for p in errors[0]["loc"]) if errors else model.__name__
        msg = f"invalid {model.__name__} setting '{field}': {first_error_message(errors)}"
        raise ConfigError(msg) from exc
