"""Feed state machine: immutable state, explicit events and a pure reducer."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from .dedup import MergeMode, merge_with_stats
from .query import DEFAULT_PAGE_LIMIT, FilterState, PageRequest, build
from .source import Item, PageResponse


class FeedPhase(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True, slots=True)
class FeedState:
    """Snapshot of the feed.

    ``generation`` is the fencing token: it increments on every filter change
    and responses tagged with an older generation are discarded. ``pending``
    is the single request in flight for the current generation, if any.
    """

    filter: FilterState = field(default_factory=FilterState)
    accumulated: tuple[Item, ...] = ()
    next_page: int = 1
    has_next_page: bool = True
    generation: int = 0
    pending: PageRequest | None = None
    error: str | None = None

    @property
    def in_flight(self) -> bool:
        return self.pending is not None

    @property
    def loading(self) -> bool:
        return self.pending is not None

    @property
    def phase(self) -> FeedPhase:
        if self.pending is not None:
            return FeedPhase.FETCHING
        if not self.has_next_page:
            return FeedPhase.EXHAUSTED
        return FeedPhase.IDLE


@dataclass(frozen=True, slots=True)
class FilterChanged:
    filter: FilterState
    force: bool = False


@dataclass(frozen=True, slots=True)
class NextPageRequested:
    pass


@dataclass(frozen=True, slots=True)
class ResponseArrived:
    generation: int
    response: PageResponse


@dataclass(frozen=True, slots=True)
class FetchFailed:
    generation: int
    error: str


FeedEvent = Union[FilterChanged, NextPageRequested, ResponseArrived, FetchFailed]


@dataclass(frozen=True, slots=True)
class Transition:
    """Result of applying one event.

    ``request`` is the fetch the driver must issue, tagged with
    ``state.generation``. ``accepted`` is False when the event was dropped, in
    which case ``reason`` says why and ``state`` is the unchanged input.
    """

    state: FeedState
    request: PageRequest | None = None
    accepted: bool = True
    reason: str | None = None
    mode: MergeMode | None = None
    duplicates: int = 0


def _dropped(state: FeedState, reason: str) -> Transition:
    return Transition(state=state, accepted=False, reason=reason)


def reduce(state: FeedState, event: FeedEvent, limit: int = DEFAULT_PAGE_LIMIT) -> Transition:
    """Apply ``event`` to ``state``."""

    if isinstance(event, FilterChanged):
        new_filter = event.filter.normalized()
        if state.generation > 0 and not event.force and new_filter == state.filter:
            return _dropped(state, "unchanged")
        request = build(new_filter, 1, limit)
        fresh = FeedState(
            filter=new_filter,
            generation=state.generation + 1,
            pending=request,
        )
        return Transition(state=fresh, request=request)

    if isinstance(event, NextPageRequested):
        if state.generation == 0:
            return _dropped(state, "not_mounted")
        if state.pending is not None:
            return _dropped(state, "in_flight")
        if not state.has_next_page:
            return _dropped(state, "exhausted")
        request = build(state.filter, state.next_page, limit)
        updated = dataclasses.replace(state, pending=request, error=None)
        return Transition(state=updated, request=request)

    if isinstance(event, ResponseArrived):
        if event.generation != state.generation or state.pending is None:
            return _dropped(state, "stale_generation")
        page = state.pending.page
        # Page 1 always starts over, including a retry after a failed first page.
        mode = MergeMode.REPLACE if page == 1 else MergeMode.APPEND
        result = merge_with_stats(state.accumulated, event.response.items, mode)
        has_next = event.response.has_next_page
        updated = dataclasses.replace(
            state,
            accumulated=result.items,
            has_next_page=has_next,
            next_page=page + 1 if has_next else page,
            pending=None,
            error=None,
        )
        return Transition(state=updated, mode=mode, duplicates=result.duplicates)

    if isinstance(event, FetchFailed):
        if event.generation != state.generation or state.pending is None:
            return _dropped(state, "stale_generation")
        return Transition(state=dataclasses.replace(state, pending=None, error=event.error))

    raise TypeError(f"Unknown feed event: {event!r}")


__all__ = [
    "FeedEvent",
    "FeedPhase",
    "FeedState",
    "FetchFailed",
    "FilterChanged",
    "NextPageRequested",
    "ResponseArrived",
    "Transition",
    "reduce",
]
