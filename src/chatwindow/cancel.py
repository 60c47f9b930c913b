"""Cooperative cancellation for synchronous selection walks."""

from __future__ import annotations

from .errors import SelectionCancelledError


class CancellationToken:
    """Token checked by the selector and packer before every oracle call.

    Example:
        token = CancellationToken()
        # from another thread, e.g. when a request deadline expires:
        token.cancel()
        # the walk then raises SelectionCancelledError and returns nothing
    """

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def is_cancelled(self) -> bool:
        """Check if cancellation has been requested."""
        return self._cancelled

    def cancel(self) -> None:
        """Request cancellation."""
        self._cancelled = True

    def raise_if_cancelled(self) -> None:
        """Raise SelectionCancelledError if cancellation was requested."""
        if self._cancelled:
            raise SelectionCancelledError("selection cancelled before completion")
