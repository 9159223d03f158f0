"""Fire-and-forget progress reporting for a running backtest."""

from __future__ import annotations

import logging
import queue
from typing import Callable

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


class ProgressChannel:
    """Bounded queue of fractional progress values in [0, 1].

    ``publish`` never blocks: when the queue is full the oldest value is
    dropped to make room. Consumers read with ``get`` / ``drain``.
    """

    def __init__(self, maxsize: int = 100):
        if maxsize <= 0:
            raise ValueError(f"maxsize must be positive, got {maxsize}")
        self._queue: queue.Queue[float] = queue.Queue(maxsize=maxsize)

    def publish(self, value: float) -> None:
        while True:
            try:
                self._queue.put_nowait(value)
                return
            except queue.Full:
                try:
                    self._queue.get_nowait()
                except queue.Empty:
                    pass

    def get(self, timeout: float | None = None) -> float:
        """Block until a value is available (raises queue.Empty on timeout)."""
        return self._queue.get(timeout=timeout)

    def drain(self) -> list[float]:
        """Return every queued value without blocking."""
        values = []
        while True:
            try:
                values.append(self._queue.get_nowait())
            except queue.Empty:
                return values

    def __len__(self) -> int:
        return self._queue.qsize()


class ProgressReporter:
    """Fan a progress value out to an optional callback and channel.

    Observer errors are logged and swallowed so they can never stop a run.
    """

    def __init__(
        self,
        callback: ProgressCallback | None = None,
        channel: ProgressChannel | None = None,
    ):
        self._callback = callback
        self._channel = channel

    def report(self, value: float) -> None:
        if self._channel is not None:
            self._channel.publish(value)
        if self._callback is not None:
            try:
                self._callback(value)
            except Exception:
                logger.warning("Progress callback failed", exc_info=True)
