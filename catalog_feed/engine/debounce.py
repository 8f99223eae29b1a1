"""Trailing-edge debounce for free-text search input."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Generic, TypeVar

import structlog

T = TypeVar("T")


class Debouncer(Generic[T]):
    """Commit the latest pushed value once ``delay`` seconds pass without a new push.

    Only the trailing edge fires, so a burst of changes produces one commit.
    A value equal to the last committed one is not committed again.
    """

    def __init__(
        self,
        callback: Callable[[T], Any],
        delay: float = 0.5,
        *,
        initial: T | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        if delay < 0:
            raise ValueError("delay must be >= 0")
        self.callback = callback
        self.delay = delay
        self.last_committed: T | None = initial
        self.logger = logger or structlog.get_logger("catalog_feed.debounce")
        self._value: T | None = None
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def push(self, value: T) -> None:
        loop = asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._value = value
        self._handle = loop.call_later(self.delay, self._fire)

    def flush(self) -> None:
        """Commit the pending value immediately, if there is one."""

        if self._handle is None:
            return
        self._handle.cancel()
        self._fire()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        value = self._value
        if value == self.last_committed:
            self.logger.debug("debounce_unchanged", value=value)
            return
        self.last_committed = value
        self.logger.debug("debounce_committed", value=value)
        self.callback(value)


__all__ = ["Debouncer"]
