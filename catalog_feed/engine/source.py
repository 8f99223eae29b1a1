"""Remote item sources: the single ``list_items`` operation the feed consumes."""

from __future__ import annotations

import asyncio
import json
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Mapping, Protocol

import httpx
import structlog
import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .query import PageRequest, SortKey, SortOrder

DEFAULT_ITEMS_KEY = "videos"


class TransientFetchError(RuntimeError):
    """Network or server failure while listing items; always recoverable."""


class Item(BaseModel):
    """Catalog record. Only ``id`` matters to the feed; the rest is display data."""

    model_config = ConfigDict(frozen=True, extra="allow")

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    title: str = ""
    category: str | None = None
    created_at: datetime | None = Field(
        default=None, validation_alias=AliasChoices("createdAt", "created_at")
    )
    views: int = 0

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        if value is None or value == "":
            raise ValueError("item identity cannot be empty")
        return str(value)

    @field_validator("views", mode="before")
    @classmethod
    def _coerce_views(cls, value: Any) -> int:
        return 0 if value is None else value


@dataclass(frozen=True, slots=True)
class PageResponse:
    """One page of items plus the continuation flag."""

    items: tuple[Item, ...] = ()
    has_next_page: bool = False

    @classmethod
    def from_payload(
        cls,
        payload: Any,
        items_key: str = DEFAULT_ITEMS_KEY,
        logger: structlog.BoundLogger | None = None,
    ) -> "PageResponse":
        """Parse a backend payload, failing closed on a missing ``hasNextPage``."""

        if not isinstance(payload, Mapping):
            raise TransientFetchError("Malformed page payload: expected a JSON object")
        raw_items = payload.get(items_key)
        if raw_items is None:
            raw_items = payload.get("items")
        if not isinstance(raw_items, list):
            raw_items = []
        items: list[Item] = []
        for record in raw_items:
            try:
                items.append(Item.model_validate(record))
            except ValidationError as exc:
                if logger is not None:
                    logger.warning("item_dropped", error=str(exc).splitlines()[0])
        return cls(items=tuple(items), has_next_page=payload.get("hasNextPage") is True)


class ItemSource(Protocol):
    """Opaque paged data source; identical requests must be idempotent reads."""

    async def list_items(self, request: PageRequest) -> PageResponse:  # pragma: no cover
        ...


class HttpItemSource:
    """List items from the catalog HTTP API with httpx."""

    def __init__(
        self,
        base_url: str,
        *,
        items_path: str = "/videos",
        items_key: str = DEFAULT_ITEMS_KEY,
        timeout: float = 15.0,
        retry_on_fail: int = 0,
        headers: Mapping[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        if retry_on_fail < 0:
            raise ValueError("retry_on_fail must be >= 0")
        self.base_url = base_url
        self.items_path = items_path
        self.items_key = items_key
        self.retry_on_fail = retry_on_fail
        self.logger = logger or structlog.get_logger("catalog_feed.source")
        self._client = httpx.AsyncClient(
            base_url=base_url,
            follow_redirects=True,
            timeout=timeout,
            headers=dict(headers) if headers else None,
            transport=transport,
        )

    async def __aenter__(self) -> "HttpItemSource":
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_items(self, request: PageRequest) -> PageResponse:
        attempts = 1 + self.retry_on_fail
        params = request.query_params()
        last_error: Exception | None = None
        for attempt in range(1, attempts + 1):
            try:
                response = await self._client.get(self.items_path, params=params)
            except httpx.HTTPError as exc:
                self.logger.warning(
                    "fetch_error", path=self.items_path, attempt=attempt, error=str(exc)
                )
                last_error = exc
                continue
            if self._is_failure(response):
                self.logger.warning(
                    "fetch_bad_status",
                    path=self.items_path,
                    attempt=attempt,
                    status=response.status_code,
                )
                last_error = TransientFetchError(f"Unexpected status {response.status_code}")
                continue
            if response.is_error:
                raise TransientFetchError(f"Unexpected status {response.status_code}")
            try:
                payload = response.json()
            except ValueError as exc:
                raise TransientFetchError("Response body is not valid JSON") from exc
            return PageResponse.from_payload(payload, self.items_key, logger=self.logger)

        raise TransientFetchError(
            f"Fetch failed after {attempts} attempts: {self.items_path}"
        ) from last_error

    @staticmethod
    def _is_failure(response: Any) -> bool:
        status_code = getattr(response, "status_code", 0)
        if status_code >= 500:
            return True
        if status_code in {401, 403, 429}:
            return True
        return False


class StaticItemSource:
    """Serve a fixed list of items page by page, e.g. from an exported file."""

    def __init__(
        self,
        items: Iterable[Item | Mapping[str, Any]],
        latency: float = 0.0,
        history: int = 100,
    ) -> None:
        self._items = [item if isinstance(item, Item) else Item.model_validate(item) for item in items]
        self.latency = latency
        # Most recent requests only.
        self.requests: deque[PageRequest] = deque(maxlen=history)

    @classmethod
    def from_file(cls, path: Path, latency: float = 0.0) -> "StaticItemSource":
        text = path.read_text(encoding="utf-8")
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
        if isinstance(data, Mapping):
            data = data.get(DEFAULT_ITEMS_KEY, data.get("items"))
        if not isinstance(data, list):
            raise ValueError(f"Item file must contain a list of items: {path}")
        return cls(data, latency=latency)

    def __len__(self) -> int:
        return len(self._items)

    async def list_items(self, request: PageRequest) -> PageResponse:
        self.requests.append(request)
        if self.latency:
            await asyncio.sleep(self.latency)
        selection = [item for item in self._items if self._matches(item, request)]
        selection.sort(
            key=self._sort_key(request.filter.sort_by),
            reverse=request.filter.sort_order is SortOrder.DESC,
        )
        start = (request.page - 1) * request.limit
        end = start + request.limit
        return PageResponse(items=tuple(selection[start:end]), has_next_page=end < len(selection))

    @staticmethod
    def _matches(item: Item, request: PageRequest) -> bool:
        current = request.filter
        if current.has_category and item.category != current.category:
            return False
        term = current.search_term.strip().lower()
        return not term or term in item.title.lower()

    @staticmethod
    def _sort_key(sort_by: SortKey):
        if sort_by is SortKey.VIEWS:
            return lambda item: item.views
        return lambda item: item.created_at.timestamp() if item.created_at else 0.0


__all__ = [
    "HttpItemSource",
    "Item",
    "ItemSource",
    "PageResponse",
    "StaticItemSource",
    "TransientFetchError",
]
