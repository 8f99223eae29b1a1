"""Pytest configuration providing shared feed fixtures."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Iterable

import pytest

from catalog_feed.config import ConfigLocator, ConfigRepository, GlobalConfig
from catalog_feed.engine import Item, PageRequest, PageResponse
from catalog_feed.logging_conf import configure_logging

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


@pytest.fixture(scope="session", autouse=True)
def isolated_home(tmp_path_factory: pytest.TempPathFactory) -> Iterable[Path]:
    home = tmp_path_factory.mktemp("catalog-feed-home")
    with pytest.MonkeyPatch.context() as patcher:
        patcher.setenv("CATALOG_FEED_HOME", str(home))
        configure_logging(verbose=True)
        yield home


def make_item(
    index: int,
    *,
    category: str = "Tech",
    title: str | None = None,
    views: int | None = None,
    prefix: str = "v",
) -> Item:
    return Item(
        id=f"{prefix}{index}",
        title=title or f"Video {index}",
        category=category,
        created_at=BASE_TIME + timedelta(minutes=index),
        views=index * 10 if views is None else views,
    )


@pytest.fixture
def item_factory() -> Callable[..., Item]:
    return make_item


@pytest.fixture
def items_factory() -> Callable[..., list[Item]]:
    def _builder(count: int, start: int = 0, **kwargs: Any) -> list[Item]:
        return [make_item(index, **kwargs) for index in range(start, start + count)]

    return _builder


class GatedSource:
    """Item source whose responses are released by the test, one call at a time."""

    def __init__(self) -> None:
        self.requests: list[PageRequest] = []
        self._gates: list[asyncio.Future[PageResponse]] = []

    async def list_items(self, request: PageRequest) -> PageResponse:
        self.requests.append(request)
        gate: asyncio.Future[PageResponse] = asyncio.get_running_loop().create_future()
        self._gates.append(gate)
        return await gate

    def resolve(self, index: int, items: Iterable[Item] = (), has_next_page: bool = False) -> None:
        self._gates[index].set_result(
            PageResponse(items=tuple(items), has_next_page=has_next_page)
        )

    def fail(self, index: int, error: BaseException) -> None:
        self._gates[index].set_exception(error)


@pytest.fixture
def gated_source() -> GatedSource:
    return GatedSource()


async def _drain(rounds: int = 5) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def drain() -> Callable[..., Any]:
    """Coroutine helper letting scheduled tasks and callbacks run."""

    return _drain


@pytest.fixture
def catalog_file(tmp_path: Path) -> Callable[..., Path]:
    def _writer(count: int = 17, categories: tuple[str, ...] = ("Tech", "Sports")) -> Path:
        records = []
        for index in range(count):
            records.append(
                {
                    "_id": f"v{index}",
                    "title": f"Video {index}",
                    "category": categories[index % len(categories)],
                    "createdAt": (BASE_TIME + timedelta(minutes=index)).isoformat(),
                    "views": index * 10,
                }
            )
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({"videos": records}), encoding="utf-8")
        return path

    return _writer


@pytest.fixture
def sample_global_config() -> GlobalConfig:
    return GlobalConfig.model_validate(
        {
            "api": {"base_url": "https://catalog.test/api", "retry_on_fail": 1},
            "feed": {"page_limit": 12, "debounce_ms": 20, "visibility_threshold": 0.5},
        }
    )


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterable[ConfigRepository]:
    monkeypatch.setenv("CATALOG_FEED_HOME", str(tmp_path))
    locator = ConfigLocator(project_root=tmp_path)
    repository = ConfigRepository(locator)
    yield repository
