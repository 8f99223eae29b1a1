"""Incremental paginated catalog feed: search, filter, sort and infinite scroll."""

__version__ = "0.1.0"
