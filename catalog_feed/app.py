"""Typer CLI entrypoint for catalog-feed."""

from __future__ import annotations

import asyncio
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer
import yaml
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.table import Table

from .browser import CatalogBrowser
from .config import ConfigRepository, GlobalConfig
from .engine import (
    ALL_CATEGORIES,
    FeedState,
    FilterState,
    HttpItemSource,
    ItemSource,
    SortKey,
    SortOrder,
    StaticItemSource,
)
from .logging_conf import configure_logging, default_log_dir, tail_log
from .ui import ProgressActivity, render_items_table, status_message

app = typer.Typer(
    help="Browse a paginated catalog feed from the terminal.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
config_app = typer.Typer(name="config", help="Configuration commands.", no_args_is_help=True)
log_app = typer.Typer(name="log", help="Log viewing commands.", no_args_is_help=True)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    verbose: bool = False


@dataclass
class BrowseResult:
    state: FeedState
    notifications: list[str]
    requests: int


def build_state(verbose: bool) -> AppState:
    configure_logging(verbose=verbose)
    return AppState(repository=ConfigRepository(), verbose=verbose)


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _load_config(state: AppState) -> GlobalConfig:
    try:
        return state.repository.load_global_config()
    except (ValidationError, ValueError) as exc:
        console.print(f"Invalid configuration: {exc}", style="red")
        raise typer.Exit(code=1) from exc


def _progress_default_enabled() -> bool:
    return bool(getattr(sys.stdout, "isatty", lambda: False)())


def _build_source(config: GlobalConfig, file: Path | None) -> ItemSource:
    if file is not None:
        return StaticItemSource.from_file(file)
    api = config.api
    return HttpItemSource(
        api.base_url,
        items_path=api.items_path,
        items_key=api.items_key,
        timeout=api.timeout,
        retry_on_fail=api.retry_on_fail,
        headers=api.headers,
    )


async def _run_browse(
    config: GlobalConfig,
    source: ItemSource,
    initial: FilterState,
    pages: int,
    progress_enabled: bool,
) -> BrowseResult:
    browser = CatalogBrowser.from_config(config, source, initial_filter=initial)
    activity = ProgressActivity(enabled=progress_enabled, console=console)
    requests = 0
    try:
        activity.start()
        browser.mount()
        requests += 1
        await browser.settle()
        if pages == 0:
            # Keep the sentinel in view: every return to Idle loads the next page.
            before = browser.trigger.signals
            browser.observe_sentinel(1.0)
            await browser.settle()
            requests += browser.trigger.signals - before
        else:
            for _ in range(pages):
                if not browser.has_next_page or browser.state.error:
                    break
                if browser.observe_sentinel(1.0):
                    requests += 1
                browser.observe_sentinel(0.0)
                await browser.settle()
        return BrowseResult(
            state=browser.state,
            notifications=list(browser.notifications),
            requests=requests,
        )
    finally:
        activity.close()
        await browser.aclose()
        if isinstance(source, HttpItemSource):
            await source.aclose()


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
) -> None:
    ctx.obj = build_state(verbose)


@app.command("browse", help="Load the feed and scroll through it page by page.")
def browse(
    ctx: typer.Context,
    query: str = typer.Option("", "--query", "-q", help="Free-text search term."),
    category: str = typer.Option(ALL_CATEGORIES, "--category", "-c", help="Category filter."),
    sort_by: Optional[SortKey] = typer.Option(None, "--sort-by", help="Sort attribute."),
    sort_order: Optional[SortOrder] = typer.Option(None, "--sort-order", help="Sort direction."),
    limit: Optional[int] = typer.Option(None, "--limit", min=1, help="Items per page."),
    pages: int = typer.Option(
        1, "--pages", min=0, help="Extra pages to load by scrolling; 0 loads until the end."
    ),
    file: Optional[Path] = typer.Option(
        None, "--file", exists=True, dir_okay=False, help="Browse a local JSON/YAML item file."
    ),
    base_url: Optional[str] = typer.Option(None, "--base-url", help="Override the API base URL."),
    quiet: bool = typer.Option(False, "--quiet", help="Only print the summary line."),
) -> None:
    state = _get_state(ctx)
    config = _load_config(state)
    feed_update: dict[str, object] = {}
    if limit is not None:
        feed_update["page_limit"] = limit
    api_update: dict[str, object] = {}
    if base_url:
        api_update["base_url"] = base_url.rstrip("/")
    if feed_update or api_update:
        config = config.model_copy(
            update={
                "feed": config.feed.model_copy(update=feed_update),
                "api": config.api.model_copy(update=api_update),
            }
        )
    if category != ALL_CATEGORIES and config.feed.categories and category not in config.feed.categories:
        console.print(
            f"Category '{category}' is not in the configured list: "
            + ", ".join(config.feed.categories),
            style="yellow",
        )

    initial = config.feed.default_filter().evolve(search_term=query, category=category)
    if sort_by is not None:
        initial = initial.evolve(sort_by=sort_by)
    if sort_order is not None:
        initial = initial.evolve(sort_order=sort_order)

    try:
        source = _build_source(config, file)
    except (OSError, ValueError, ValidationError) as exc:
        console.print(f"Cannot read item file: {exc}", style="red")
        raise typer.Exit(code=1) from exc

    progress_flag = _progress_default_enabled() and not quiet
    result = asyncio.run(_run_browse(config, source, initial, pages, progress_flag))
    feed_state = result.state

    for message in result.notifications:
        console.print(f"Fetch failed: {message}", style="red")
    if not quiet and feed_state.accumulated:
        console.print(render_items_table(feed_state.accumulated))
    message = status_message(feed_state)
    if message and not quiet:
        console.print(message, style="dim")
    console.print(
        f"Loaded {len(feed_state.accumulated)} items in {result.requests} requests"
        f" (next page {feed_state.next_page}, phase {feed_state.phase.value})"
    )
    if result.notifications and not feed_state.accumulated:
        raise typer.Exit(code=1)


@config_app.command("show", help="Print the effective configuration.")
def config_show(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    config = _load_config(state)
    console.print(f"# {state.repository.locator.global_config_path()}", style="dim")
    console.print(yaml.safe_dump(config.model_dump(mode="json"), sort_keys=False, allow_unicode=True))


@config_app.command("init", help="Write the default configuration file.")
def config_init(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file."),
) -> None:
    state = _get_state(ctx)
    path = state.repository.locator.global_config_path()
    if path.exists() and not force:
        console.print(f"Configuration already exists: {path}", style="yellow")
        raise typer.Exit(code=1)
    saved = state.repository.save_global_config(GlobalConfig())
    console.print(f"Configuration written to {saved}", style="green")


@config_app.command("categories", help="List the categories offered for filtering.")
def config_categories(ctx: typer.Context) -> None:
    config = _load_config(_get_state(ctx))
    table = Table(title="Categories", box=box.SIMPLE_HEAD)
    table.add_column("Name", style="cyan")
    table.add_row(f"{ALL_CATEGORIES} (no filter)")
    for name in config.feed.categories:
        table.add_row(name)
    console.print(table)


@log_app.command("show", help="Show the most recent log lines.")
def log_show(
    errors: bool = typer.Option(False, "--errors", help="Show the error log instead."),
    tail: int = typer.Option(100, "--tail", min=1, help="Number of lines to show."),
) -> None:
    path = default_log_dir() / ("error.log" if errors else "feed.log")
    lines = tail_log(path, tail)
    if not lines:
        console.print("No log entries yet.", style="dim")
        return
    console.print(f"{path.name} · last {len(lines)} lines", style="cyan")
    console.print("".join(lines), markup=False, highlight=False)


app.add_typer(config_app, name="config")
app.add_typer(log_app, name="log")


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
