"""Catalog browser wiring search input and scroll sentinel into the feed controller."""

from __future__ import annotations

import asyncio
from collections import deque

import structlog

from .config import GlobalConfig
from .engine import (
    Debouncer,
    FeedController,
    FeedPhase,
    FeedState,
    FilterState,
    Item,
    ItemSource,
    SortKey,
    SortOrder,
    TransientFetchError,
    VisibilityTrigger,
)
from .engine.query import DEFAULT_PAGE_LIMIT


class CatalogBrowser:
    """Central coordinator for one mounted catalog feed.

    The debounced search box and the visibility trigger are independent event
    producers; both reach the feed only through the controller's entry points.
    """

    def __init__(
        self,
        source: ItemSource,
        *,
        limit: int = DEFAULT_PAGE_LIMIT,
        debounce_delay: float = 0.5,
        visibility_threshold: float = 0.5,
        initial_filter: FilterState | None = None,
        logger: structlog.BoundLogger | None = None,
        max_notifications: int = 50,
    ) -> None:
        self.logger = logger or structlog.get_logger("catalog_feed.browser")
        self.controller = FeedController(
            source,
            limit=limit,
            initial_filter=initial_filter,
            logger=self.logger.bind(component="controller"),
        )
        self.search = Debouncer(
            self._commit_search,
            delay=debounce_delay,
            initial=self.controller.filter.search_term,
            logger=self.logger.bind(component="search"),
        )
        self.trigger = VisibilityTrigger(
            self.controller.on_scrolled_near_end,
            self._can_load,
            threshold=visibility_threshold,
            logger=self.logger.bind(component="visibility"),
        )
        self.notifications: deque[str] = deque(maxlen=max_notifications)
        self._halted = False
        self.controller.subscribe(self._on_state_change)
        self.controller.on_error(self._on_fetch_error)

    @classmethod
    def from_config(
        cls,
        config: GlobalConfig,
        source: ItemSource,
        initial_filter: FilterState | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> "CatalogBrowser":
        feed = config.feed
        return cls(
            source,
            limit=feed.page_limit,
            debounce_delay=feed.debounce_seconds,
            visibility_threshold=feed.visibility_threshold,
            initial_filter=initial_filter or feed.default_filter(),
            logger=logger,
        )

    # ------------------------------------------------------------------
    @property
    def state(self) -> FeedState:
        return self.controller.state

    @property
    def items(self) -> tuple[Item, ...]:
        return self.controller.accumulated

    @property
    def loading(self) -> bool:
        return self.controller.loading

    @property
    def has_next_page(self) -> bool:
        return self.controller.has_next_page

    # ------------------------------------------------------------------
    def mount(self) -> None:
        self.controller.mount()

    def type_search(self, text: str) -> None:
        self.search.push(text)

    def select_category(self, category: str) -> None:
        self.controller.on_filter_change(self.controller.filter.evolve(category=category))

    def select_sort(self, sort_by: SortKey | str, sort_order: SortOrder | str | None = None) -> None:
        changes: dict[str, object] = {"sort_by": SortKey(sort_by)}
        if sort_order is not None:
            changes["sort_order"] = SortOrder(sort_order)
        self.controller.on_filter_change(self.controller.filter.evolve(**changes))

    def observe_sentinel(self, ratio: float) -> bool:
        # A fresh visibility report is an explicit retry after a failed fetch.
        self._halted = False
        return self.trigger.observe(ratio)

    async def settle(self) -> None:
        """Wait until no fetch is outstanding and no queued re-evaluation starts another."""

        while True:
            await self.controller.wait_for_idle()
            # Let state-change callbacks queued with call_soon run first.
            await asyncio.sleep(0)
            if not self.controller.has_pending_fetches:
                return

    async def aclose(self) -> None:
        self.search.cancel()
        await self.controller.aclose()

    # ------------------------------------------------------------------
    def _commit_search(self, term: str) -> None:
        self.logger.info("search_committed", term=term)
        self.controller.on_filter_change(self.controller.filter.evolve(search_term=term))

    def _can_load(self) -> bool:
        return (
            self.controller.mounted
            and self.controller.phase is FeedPhase.IDLE
            and not self._halted
        )

    def _on_state_change(self, state: FeedState) -> None:
        # After a failure the feed stops advancing until the user scrolls again.
        self._halted = state.error is not None
        asyncio.get_running_loop().call_soon(self.trigger.refresh)

    def _on_fetch_error(self, error: TransientFetchError) -> None:
        self.notifications.append(str(error))
        self.logger.warning("fetch_notification", error=str(error))


__all__ = ["CatalogBrowser"]
