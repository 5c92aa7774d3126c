"""Cooperative cancellation shared by the pipeline stages."""

from __future__ import annotations

import os
import signal
import threading
from types import FrameType
from typing import Callable, Optional

from .errors import CancelledError
from .logging import get_logger


class CancellationToken:
    """Thread-safe stop flag observed at stage checkpoints."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def reset(self) -> None:
        """Re-arm the token between runs."""
        self._event.clear()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def is_running(self) -> bool:
        return not self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancelledError()

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)


class GracefulShutdown:
    """Install a SIGINT handler that trips a token, then hard-exits on the second signal."""

    def __init__(
        self,
        token: CancellationToken,
        *,
        on_first_signal: Optional[Callable[[], None]] = None,
        exit_fn: Callable[[int], None] = os._exit,
    ) -> None:
        self.token = token
        self._on_first_signal = on_first_signal
        self._exit = exit_fn
        self._signals = 0
        self._previous: object = None
        self.logger = get_logger("cancellation")

    def handle(self, signum: int, frame: FrameType | None = None) -> None:
        self._signals += 1
        if self._signals == 1:
            self.logger.warning("Interrupt received, stopping after the current step (press Ctrl+C again to force)")
            self.token.cancel()
            if self._on_first_signal is not None:
                self._on_first_signal()
            return
        self.logger.error("Forced shutdown")
        self._exit(1)

    def install(self) -> "GracefulShutdown":
        if threading.current_thread() is threading.main_thread():
            self._previous = signal.signal(signal.SIGINT, self.handle)
        return self

    def restore(self) -> None:
        if self._previous is not None:
            signal.signal(signal.SIGINT, self._previous)  # type: ignore[arg-type]
            self._previous = None

    def __enter__(self) -> "GracefulShutdown":
        return self.install()

    def __exit__(self, *exc_info: object) -> None:
        self.restore()


__all__ = ["CancellationToken", "GracefulShutdown"]
