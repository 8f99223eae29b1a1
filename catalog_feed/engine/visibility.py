"""Scroll sentinel observer emitting "load more" signals."""

from __future__ import annotations

from typing import Any, Callable

import structlog


class VisibilityTrigger:
    """Edge-triggered load-more signal for the sentinel at the end of the list.

    A signal fires when the condition "sentinel visible and the feed can load"
    turns true. It does not fire again while the condition stays true, and
    re-arms once it has been false (e.g. while a fetch is in flight).
    """

    def __init__(
        self,
        on_load_more: Callable[[], Any],
        can_load: Callable[[], bool],
        threshold: float = 0.5,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        if not 0 < threshold <= 1:
            raise ValueError("threshold must be within (0, 1]")
        self.on_load_more = on_load_more
        self.can_load = can_load
        self.threshold = threshold
        self.logger = logger or structlog.get_logger("catalog_feed.visibility")
        self.signals = 0
        self._visible = False
        self._ready = False

    @property
    def visible(self) -> bool:
        return self._visible

    def observe(self, ratio: float) -> bool:
        """Report the visible fraction of the sentinel; returns True if a signal fired."""

        self._visible = ratio > 0 and ratio >= self.threshold
        return self._evaluate()

    def refresh(self) -> bool:
        """Re-evaluate after the feed state changed."""

        return self._evaluate()

    def _evaluate(self) -> bool:
        ready = self._visible and self.can_load()
        fire = ready and not self._ready
        self._ready = ready
        if fire:
            self.signals += 1
            self.logger.debug("load_more_signal", signals=self.signals)
            self.on_load_more()
            # The accepted signal moves the feed out of Idle, which re-arms the edge.
            self._ready = self._visible and self.can_load()
        return fire


__all__ = ["VisibilityTrigger"]
