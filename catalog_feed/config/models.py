"""Pydantic models used across catalog-feed configuration."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from ..engine.query import ALL_CATEGORIES, DEFAULT_PAGE_LIMIT, FilterState, SortKey, SortOrder

DEFAULT_CATEGORIES = ["Tech", "Movie Trailer", "Webseries Clips", "Sports", "Hindi Music"]


class ApiConfig(BaseModel):
    """Where and how the catalog backend is reached."""

    base_url: str = "http://localhost:5000/api"
    items_path: str = "/videos"
    items_key: str = "videos"
    timeout: float = 15.0
    retry_on_fail: int = 0
    headers: dict[str, str] = Field(default_factory=dict)

    @field_validator("base_url")
    @classmethod
    def _strip_base_url(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value:
            raise ValueError("base_url cannot be empty")
        return value

    @field_validator("items_path")
    @classmethod
    def _leading_slash(cls, value: str) -> str:
        value = value.strip()
        return value if value.startswith("/") else f"/{value}"

    @model_validator(mode="after")
    def _validate_limits(self) -> "ApiConfig":
        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        if self.retry_on_fail < 0:
            raise ValueError("retry_on_fail must be >= 0")
        return self


class FeedConfig(BaseModel):
    """Paging, debounce and default filter settings for the feed."""

    page_limit: int = DEFAULT_PAGE_LIMIT
    debounce_ms: int = 500
    visibility_threshold: float = 0.5
    default_sort_by: SortKey = SortKey.CREATED_AT
    default_sort_order: SortOrder = SortOrder.DESC
    categories: list[str] = Field(default_factory=lambda: list(DEFAULT_CATEGORIES))

    @field_validator("categories", mode="before")
    @classmethod
    def _clean_categories(cls, value: Any) -> list[str]:
        if value in (None, ""):
            return []
        if not isinstance(value, (list, tuple)):
            raise ValueError("categories expects a list of names")
        cleaned: list[str] = []
        for name in value:
            name = str(name).strip()
            if name and name != ALL_CATEGORIES and name not in cleaned:
                cleaned.append(name)
        return cleaned

    @model_validator(mode="after")
    def _validate_ranges(self) -> "FeedConfig":
        if self.page_limit < 1:
            raise ValueError("page_limit must be > 0")
        if self.debounce_ms < 0:
            raise ValueError("debounce_ms must be >= 0")
        if not 0 < self.visibility_threshold <= 1:
            raise ValueError("visibility_threshold must be within (0, 1]")
        return self

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0

    def default_filter(self) -> FilterState:
        return FilterState(sort_by=self.default_sort_by, sort_order=self.default_sort_order)


class GlobalConfig(BaseModel):
    """Top-level configuration file."""

    api: ApiConfig = Field(default_factory=ApiConfig)
    feed: FeedConfig = Field(default_factory=FeedConfig)


__all__ = ["ApiConfig", "DEFAULT_CATEGORIES", "FeedConfig", "GlobalConfig"]
