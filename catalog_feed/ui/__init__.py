"""Terminal presentation helpers."""

from .render import (
    EMPTY_MESSAGE,
    END_MESSAGE,
    LOADING_MESSAGE,
    ProgressActivity,
    render_items_table,
    status_message,
)

__all__ = [
    "EMPTY_MESSAGE",
    "END_MESSAGE",
    "LOADING_MESSAGE",
    "ProgressActivity",
    "render_items_table",
    "status_message",
]
