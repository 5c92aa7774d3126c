"""Tests for repodocs.cancellation."""

from __future__ import annotations

import signal
from typing import List

import pytest

from repodocs.cancellation import CancellationToken, GracefulShutdown
from repodocs.errors import CancelledError


def test_token_flips_once_and_can_be_rearmed() -> None:
    token = CancellationToken()
    assert token.is_running()
    token.raise_if_cancelled()

    token.cancel()
    token.cancel()

    assert token.cancelled
    assert token.wait(0)
    with pytest.raises(CancelledError) as excinfo:
        token.raise_if_cancelled()
    assert excinfo.value.exit_code == 130

    token.reset()
    assert token.is_running()


def test_first_signal_cancels_second_forces_exit() -> None:
    token = CancellationToken()
    exits: List[int] = []
    notified: List[bool] = []
    shutdown = GracefulShutdown(token, on_first_signal=lambda: notified.append(True), exit_fn=exits.append)

    shutdown.handle(signal.SIGINT)
    assert token.cancelled
    assert notified == [True]
    assert exits == []

    shutdown.handle(signal.SIGINT)
    assert exits == [1]


def test_install_and_restore_sigint_handler() -> None:
    original = signal.getsignal(signal.SIGINT)
    shutdown = GracefulShutdown(CancellationToken(), exit_fn=lambda code: None)

    with shutdown:
        assert signal.getsignal(signal.SIGINT) == shutdown.handle

    assert signal.getsignal(signal.SIGINT) == original
