"""Error taxonomy for context-window selection and the completion backend."""

from __future__ import annotations


class ChatWindowError(Exception):
    """Base class for every error raised by chatwindow."""


class InvalidBudgetError(ChatWindowError, ValueError):
    """Raised when a token budget is not a positive integer."""

    def __init__(self, budget: object) -> None:
        self.budget = budget
        super().__init__(f"budget must be a positive integer, got {budget!r}")


class OracleFailureError(ChatWindowError):
    """Raised when the token counter fails or returns an unusable count."""


class SelectionCancelledError(ChatWindowError):
    """Raised when a selection walk is cancelled before it completes."""


class ConfigError(ChatWindowError):
    """Raised when configuration values fail validation."""


class BackendError(ChatWindowError):
    """Raised when the completion backend returns an error."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)
