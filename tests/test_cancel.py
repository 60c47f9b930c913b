"""Tests for the cancellation token."""

import pytest

from chatwindow.cancel import CancellationToken
from chatwindow.errors import ChatWindowError, SelectionCancelledError


def test_token_starts_uncancelled():
    token = CancellationToken()
    assert token.is_cancelled is False
    token.raise_if_cancelled()


def test_cancel_is_sticky_and_idempotent():
    token = CancellationToken()
    token.cancel()
    token.cancel()
    assert token.is_cancelled is True
    with pytest.raises(SelectionCancelledError):
        token.raise_if_cancelled()


def test_cancelled_error_is_a_chatwindow_error():
    assert issubclass(SelectionCancelledError, ChatWindowError)
