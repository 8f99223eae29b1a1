"""Identity-based deduplicating merge of fetched pages into the feed."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Hashable, Iterable, Sequence

from .source import Item

IdentityFn = Callable[[Item], Hashable]


class MergeMode(str, Enum):
    """Whether a response starts a fresh feed or extends the current one."""

    REPLACE = "replace"
    APPEND = "append"


@dataclass(frozen=True, slots=True)
class MergeResult:
    items: tuple[Item, ...]
    duplicates: int


def _identity(item: Item) -> Hashable:
    return item.id


def _unique(incoming: Iterable[Item], seen: set[Hashable], key: IdentityFn) -> tuple[list[Item], int]:
    fresh: list[Item] = []
    duplicates = 0
    for item in incoming:
        identity = key(item)
        if identity in seen:
            duplicates += 1
            continue
        seen.add(identity)
        fresh.append(item)
    return fresh, duplicates


def merge_with_stats(
    existing: Sequence[Item],
    incoming: Iterable[Item],
    mode: MergeMode,
    key: IdentityFn = _identity,
) -> MergeResult:
    """Merge ``incoming`` into ``existing`` and report how many duplicates were dropped.

    ``REPLACE`` keeps only the first occurrence of each identity in ``incoming``.
    ``APPEND`` keeps ``existing`` untouched and adds the unseen items from
    ``incoming`` in arrival order. Both run in linear time.
    """

    if mode is MergeMode.REPLACE:
        fresh, duplicates = _unique(incoming, set(), key)
        return MergeResult(items=tuple(fresh), duplicates=duplicates)
    seen = {key(item) for item in existing}
    fresh, duplicates = _unique(incoming, seen, key)
    return MergeResult(items=tuple(existing) + tuple(fresh), duplicates=duplicates)


def merge(
    existing: Sequence[Item],
    incoming: Iterable[Item],
    mode: MergeMode,
    key: IdentityFn = _identity,
) -> tuple[Item, ...]:
    return merge_with_stats(existing, incoming, mode, key).items


__all__ = ["MergeMode", "MergeResult", "merge", "merge_with_stats"]
