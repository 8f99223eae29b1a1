"""Fetch controller running the feed reducer on the asyncio event loop."""

from __future__ import annotations

import asyncio
import dataclasses
from typing import Callable

import structlog

from .query import DEFAULT_PAGE_LIMIT, FilterState, PageRequest
from .source import Item, ItemSource, TransientFetchError
from .state import (
    FeedEvent,
    FeedPhase,
    FeedState,
    FetchFailed,
    FilterChanged,
    NextPageRequested,
    ResponseArrived,
    reduce,
)

StateListener = Callable[[FeedState], None]
ErrorListener = Callable[[TransientFetchError], None]


class FeedController:
    """Own the feed state and issue at most one fetch per generation.

    Entry points are synchronous and must be called from inside a running
    event loop; fetches run as tasks. A response is merged only if its
    generation still matches the current one, so a slow page from a
    superseded filter can never overwrite newer results.
    """

    def __init__(
        self,
        source: ItemSource,
        *,
        limit: int = DEFAULT_PAGE_LIMIT,
        initial_filter: FilterState | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be > 0")
        self.source = source
        self.limit = limit
        self.logger = logger or structlog.get_logger("catalog_feed.controller")
        self._state = FeedState(filter=(initial_filter or FilterState()).normalized())
        self._mounted = False
        self._closed = False
        self._tasks: set[asyncio.Task[None]] = set()
        self._listeners: list[StateListener] = []
        self._error_listeners: list[ErrorListener] = []

    # ------------------------------------------------------------------
    # Read-only surface for presentation
    # ------------------------------------------------------------------
    @property
    def state(self) -> FeedState:
        return self._state

    @property
    def accumulated(self) -> tuple[Item, ...]:
        return self._state.accumulated

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def has_next_page(self) -> bool:
        return self._state.has_next_page

    @property
    def phase(self) -> FeedPhase:
        return self._state.phase

    @property
    def generation(self) -> int:
        return self._state.generation

    @property
    def filter(self) -> FilterState:
        return self._state.filter

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def has_pending_fetches(self) -> bool:
        """True while any fetch task, stale ones included, has not finished."""

        return bool(self._tasks)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def on_error(self, listener: ErrorListener) -> Callable[[], None]:
        self._error_listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._error_listeners:
                self._error_listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def mount(self) -> asyncio.Task[None] | None:
        """Start the first generation with the initial filter."""

        if self._closed:
            raise RuntimeError("FeedController cannot be mounted again after aclose()")
        if self._mounted:
            return None
        self._mounted = True
        self.logger.info("feed_mounted", limit=self.limit)
        return self._dispatch(FilterChanged(self._state.filter, force=True))

    async def wait_for_idle(self) -> None:
        """Wait for every outstanding fetch; re-raises unexpected errors from those fetches."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def aclose(self) -> None:
        """Unmount. Outstanding fetches finish but their results are ignored."""

        self._closed = True
        self._mounted = False
        outstanding = list(self._tasks)
        if outstanding:
            await asyncio.gather(*outstanding, return_exceptions=True)
        self._listeners.clear()
        self._error_listeners.clear()
        self.logger.info("feed_unmounted", generation=self._state.generation)

    # ------------------------------------------------------------------
    # Imperative entry points
    # ------------------------------------------------------------------
    def on_filter_change(self, new_filter: FilterState) -> asyncio.Task[None] | None:
        if self._closed:
            return None
        if not self._mounted:
            # Before mount the filter only seeds the first generation.
            self._state = dataclasses.replace(self._state, filter=new_filter.normalized())
            return None
        return self._dispatch(FilterChanged(new_filter))

    def on_scrolled_near_end(self) -> asyncio.Task[None] | None:
        if not self._mounted:
            return None
        return self._dispatch(NextPageRequested())

    # ------------------------------------------------------------------
    def _dispatch(self, event: FeedEvent) -> asyncio.Task[None] | None:
        transition = reduce(self._state, event, self.limit)
        if not transition.accepted:
            self.logger.debug(
                "event_dropped",
                event_type=type(event).__name__,
                reason=transition.reason,
                generation=self._state.generation,
            )
            return None
        self._state = transition.state
        task = None
        if transition.request is not None:
            task = self._issue(self._state.generation, transition.request)
        self._notify()
        return task

    def _issue(self, generation: int, request: PageRequest) -> asyncio.Task[None]:
        loop = asyncio.get_running_loop()
        task = loop.create_task(
            self._run_fetch(generation, request),
            name=f"feed-fetch-g{generation}-p{request.page}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        self.logger.info(
            "fetch_issued",
            generation=generation,
            page=request.page,
            params=request.query_params(),
        )
        return task

    def _task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        # Crashes are already logged by _run_fetch.
        if not task.cancelled():
            task.exception()

    async def _run_fetch(self, generation: int, request: PageRequest) -> None:
        try:
            response = await self.source.list_items(request)
        except TransientFetchError as exc:
            self._complete(FetchFailed(generation, str(exc)), request, error=exc)
            return
        except Exception as exc:
            self.logger.exception("fetch_crashed", generation=generation, page=request.page)
            self._complete(FetchFailed(generation, repr(exc)), request)
            raise
        self._complete(ResponseArrived(generation, response), request)

    def _complete(
        self,
        event: ResponseArrived | FetchFailed,
        request: PageRequest,
        error: TransientFetchError | None = None,
    ) -> None:
        if self._closed:
            self.logger.debug("result_after_unmount", generation=event.generation, page=request.page)
            return
        transition = reduce(self._state, event, self.limit)
        if not transition.accepted:
            self.logger.info(
                "response_discarded",
                generation=event.generation,
                current_generation=self._state.generation,
                page=request.page,
                reason=transition.reason,
            )
            return
        self._state = transition.state
        if isinstance(event, FetchFailed):
            self.logger.warning(
                "fetch_failed", generation=event.generation, page=request.page, error=event.error
            )
            if error is not None:
                for listener in list(self._error_listeners):
                    listener(error)
        else:
            self.logger.info(
                "response_accepted",
                generation=event.generation,
                page=request.page,
                mode=transition.mode.value if transition.mode else None,
                received=len(event.response.items),
                duplicates=transition.duplicates,
                total=len(self._state.accumulated),
                has_next_page=self._state.has_next_page,
            )
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._state)


__all__ = ["FeedController"]
