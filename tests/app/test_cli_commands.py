from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from catalog_feed.app import AppState, app
from catalog_feed.config import ConfigRepository
from catalog_feed.engine import PageRequest, PageResponse, TransientFetchError


@pytest.fixture
def runner(monkeypatch: pytest.MonkeyPatch, temp_config_repository: ConfigRepository) -> CliRunner:
    state = AppState(repository=temp_config_repository)
    monkeypatch.setattr("catalog_feed.app.build_state", lambda verbose: state)
    return CliRunner()


def test_browse_file_scrolls_one_extra_page(runner: CliRunner, catalog_file) -> None:
    path = catalog_file(17)
    result = runner.invoke(app, ["browse", "--file", str(path), "--pages", "1"])
    assert result.exit_code == 0, result.output
    assert "Loaded 17 items in 2 requests" in result.output
    assert "phase exhausted" in result.output
    assert "You've reached the end!" in result.output


def test_browse_without_scrolling_stops_after_first_page(runner: CliRunner, catalog_file) -> None:
    path = catalog_file(17)
    result = runner.invoke(app, ["browse", "--file", str(path), "--pages", "1", "--limit", "20", "--quiet"])
    assert result.exit_code == 0, result.output
    assert "Loaded 17 items in 1 requests" in result.output

    result = runner.invoke(app, ["browse", "--file", str(path), "--limit", "5", "--pages", "1", "--quiet"])
    assert "Loaded 10 items in 2 requests (next page 3, phase idle)" in result.output


def test_browse_until_end(runner: CliRunner, catalog_file) -> None:
    path = catalog_file(30)
    result = runner.invoke(app, ["browse", "--file", str(path), "--pages", "0", "--limit", "5", "--quiet"])
    assert result.exit_code == 0, result.output
    assert "Loaded 30 items in 6 requests" in result.output


def test_browse_filters_by_category_and_query(runner: CliRunner, catalog_file) -> None:
    path = catalog_file(17)
    result = runner.invoke(
        app,
        ["browse", "--file", str(path), "--category", "Sports", "--query", "video 1", "--quiet"],
    )
    assert result.exit_code == 0, result.output
    # Sports items are the odd indices; titles containing "video 1" among them: 1, 11, 13, 15.
    assert "Loaded 4 items in 1 requests" in result.output


def test_browse_empty_result_reports_no_items(runner: CliRunner, catalog_file) -> None:
    path = catalog_file(5)
    result = runner.invoke(app, ["browse", "--file", str(path), "--query", "missing"])
    assert result.exit_code == 0, result.output
    assert "No items found" in result.output
    assert "Loaded 0 items in 1 requests" in result.output


def test_browse_reports_fetch_failure(runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
    class DownSource:
        async def list_items(self, request: PageRequest) -> PageResponse:
            raise TransientFetchError("backend unavailable")

    monkeypatch.setattr("catalog_feed.app._build_source", lambda config, file: DownSource())
    result = runner.invoke(app, ["browse", "--pages", "3"])
    assert result.exit_code == 1
    assert "Fetch failed: backend unavailable" in result.output
    assert "Loaded 0 items in 1 requests" in result.output


def test_config_init_show_and_categories(runner: CliRunner, temp_config_repository: ConfigRepository) -> None:
    result = runner.invoke(app, ["config", "init"])
    assert result.exit_code == 0, result.output
    assert "Configuration written" in result.output
    assert temp_config_repository.locator.global_config_path().exists()

    again = runner.invoke(app, ["config", "init"])
    assert again.exit_code == 1
    assert runner.invoke(app, ["config", "init", "--force"]).exit_code == 0

    shown = runner.invoke(app, ["config", "show"])
    assert shown.exit_code == 0, shown.output
    assert "base_url: http://localhost:5000/api" in shown.output
    assert "page_limit: 12" in shown.output

    categories = runner.invoke(app, ["config", "categories"])
    assert categories.exit_code == 0, categories.output
    assert "Movie Trailer" in categories.output


def test_invalid_config_exits(runner: CliRunner, temp_config_repository: ConfigRepository) -> None:
    path = temp_config_repository.locator.global_config_path()
    path.write_text("feed:\n  page_limit: 0\n", encoding="utf-8")
    result = runner.invoke(app, ["config", "show"])
    assert result.exit_code == 1
    assert "Invalid configuration" in result.output


def test_log_show_tails_feed_log(runner: CliRunner, temp_config_repository: ConfigRepository) -> None:
    empty = runner.invoke(app, ["log", "show"])
    assert empty.exit_code == 0, empty.output
    assert "No log entries yet." in empty.output

    log_path: Path = temp_config_repository.locator.logs_dir / "feed.log"
    log_path.write_text("first\nsecond\nthird\n", encoding="utf-8")
    result = runner.invoke(app, ["log", "show", "--tail", "2"])
    assert result.exit_code == 0, result.output
    assert "second" in result.output
    assert "third" in result.output
    assert "first" not in result.output
