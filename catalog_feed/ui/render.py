"""Rich rendering of the feed for terminal output."""

from __future__ import annotations

from typing import Sequence

from rich import box
from rich.console import Console
from rich.status import Status
from rich.table import Table

from ..engine import FeedState, Item

LOADING_MESSAGE = "Loading more items..."
END_MESSAGE = "You've reached the end!"
EMPTY_MESSAGE = "No items found. Try adjusting your search or filters."


def status_message(state: FeedState) -> str | None:
    """Text shown under the list, mirroring the sentinel area of the catalog page."""

    if state.loading:
        return LOADING_MESSAGE
    if not state.accumulated:
        return EMPTY_MESSAGE
    if not state.has_next_page:
        return END_MESSAGE
    return None


def _format_views(views: int) -> str:
    if views >= 1_000_000:
        return f"{views / 1_000_000:.1f}M"
    if views >= 1_000:
        return f"{views / 1_000:.1f}K"
    return str(views)


def render_items_table(items: Sequence[Item], title: str | None = None) -> Table:
    table = Table(title=title or f"Catalog · {len(items)} items", box=box.SIMPLE_HEAD)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Title", style="cyan", overflow="fold")
    table.add_column("Category", style="magenta")
    table.add_column("Views", style="green", justify="right")
    table.add_column("Created", style="yellow")
    for index, item in enumerate(items, start=1):
        table.add_row(
            str(index),
            item.title or item.id,
            item.category or "-",
            _format_views(item.views),
            item.created_at.strftime("%Y-%m-%d") if item.created_at else "-",
        )
    return table


class ProgressActivity:
    """Indeterminate activity indicator using Rich Status spinner."""

    def __init__(self, enabled: bool = True, console: Console | None = None) -> None:
        self.enabled = enabled
        self.console = console or Console()
        self._status: Status | None = None

    def start(self, message: str = LOADING_MESSAGE) -> None:
        if not self.enabled or self._status is not None:
            return
        self._status = self.console.status(message)
        self._status.start()

    def update(self, message: str) -> None:
        if self._status is not None:
            self._status.update(message)

    def close(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None


__all__ = [
    "EMPTY_MESSAGE",
    "END_MESSAGE",
    "LOADING_MESSAGE",
    "ProgressActivity",
    "render_items_table",
    "status_message",
]
