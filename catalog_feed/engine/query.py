"""Filter snapshots and normalised page requests."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

ALL_CATEGORIES = "All"
DEFAULT_PAGE_LIMIT = 12


class SortKey(str, Enum):
    """Sortable item attributes understood by the catalog backend."""

    CREATED_AT = "createdAt"
    VIEWS = "views"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True, slots=True)
class FilterState:
    """Immutable snapshot of search, category and sort selections."""

    search_term: str = ""
    category: str = ALL_CATEGORIES
    sort_by: SortKey = SortKey.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC

    def __post_init__(self) -> None:
        # Enum coercion keeps FilterState("x", sort_by="views") equal to the enum form.
        object.__setattr__(self, "sort_by", SortKey(self.sort_by))
        object.__setattr__(self, "sort_order", SortOrder(self.sort_order))
        object.__setattr__(self, "category", self.category or ALL_CATEGORIES)

    def evolve(self, **changes: Any) -> "FilterState":
        """Return a new snapshot with ``changes`` applied."""

        return dataclasses.replace(self, **changes)

    def normalized(self) -> "FilterState":
        """Return the snapshot with a whitespace-trimmed search term."""

        term = self.search_term.strip()
        if term == self.search_term:
            return self
        return self.evolve(search_term=term)

    @property
    def has_category(self) -> bool:
        return self.category != ALL_CATEGORIES


@dataclass(frozen=True, slots=True)
class PageRequest:
    """Fully determines one fetch against the remote collection."""

    page: int
    limit: int
    filter: FilterState = field(default_factory=FilterState)

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if self.limit < 1:
            raise ValueError("limit must be > 0")

    def query_params(self) -> dict[str, str]:
        """Render transport parameters, omitting empty search and the "All" category."""

        params = {
            "page": str(self.page),
            "limit": str(self.limit),
            "sortBy": self.filter.sort_by.value,
            "sortOrder": self.filter.sort_order.value,
        }
        term = self.filter.search_term.strip()
        if term:
            params["query"] = term
        if self.filter.has_category:
            params["category"] = self.filter.category
        return params


def build(filter: FilterState, page: int, limit: int = DEFAULT_PAGE_LIMIT) -> PageRequest:
    """Turn the current filter state into a normalised page request."""

    return PageRequest(page=page, limit=limit, filter=filter.normalized())


__all__ = [
    "ALL_CATEGORIES",
    "DEFAULT_PAGE_LIMIT",
    "FilterState",
    "PageRequest",
    "SortKey",
    "SortOrder",
    "build",
]
