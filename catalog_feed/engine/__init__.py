"""Engine components: query → fetch controller → dedup merge, plus input triggers."""

from .controller import FeedController
from .debounce import Debouncer
from .dedup import MergeMode, MergeResult, merge, merge_with_stats
from .query import ALL_CATEGORIES, FilterState, PageRequest, SortKey, SortOrder, build
from .source import (
    HttpItemSource,
    Item,
    ItemSource,
    PageResponse,
    StaticItemSource,
    TransientFetchError,
)
from .state import FeedPhase, FeedState
from .visibility import VisibilityTrigger

__all__ = [
    "ALL_CATEGORIES",
    "Debouncer",
    "FeedController",
    "FeedPhase",
    "FeedState",
    "FilterState",
    "HttpItemSource",
    "Item",
    "ItemSource",
    "MergeMode",
    "MergeResult",
    "PageRequest",
    "PageResponse",
    "SortKey",
    "SortOrder",
    "StaticItemSource",
    "TransientFetchError",
    "VisibilityTrigger",
    "build",
    "merge",
    "merge_with_stats",
]
