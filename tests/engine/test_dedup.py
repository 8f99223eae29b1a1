from __future__ import annotations

import random

from catalog_feed.engine.dedup import MergeMode, merge, merge_with_stats


def _ids(items) -> list[str]:
    return [item.id for item in items]


def test_append_skips_known_identities(items_factory) -> None:
    existing = items_factory(3)
    incoming = items_factory(4, start=2)
    result = merge_with_stats(existing, incoming, MergeMode.APPEND)
    assert _ids(result.items) == ["v0", "v1", "v2", "v3", "v4", "v5"]
    assert result.duplicates == 1


def test_append_dedups_within_incoming(item_factory) -> None:
    existing = [item_factory(0)]
    incoming = [item_factory(1), item_factory(1), item_factory(0), item_factory(2)]
    assert _ids(merge(existing, incoming, MergeMode.APPEND)) == ["v0", "v1", "v2"]


def test_replace_discards_existing_and_keeps_first_occurrence(items_factory, item_factory) -> None:
    existing = items_factory(5)
    first = item_factory(7, title="first")
    second = item_factory(7, title="second")
    result = merge_with_stats(existing, [first, item_factory(8), second], MergeMode.REPLACE)
    assert _ids(result.items) == ["v7", "v8"]
    assert result.items[0].title == "first"
    assert result.duplicates == 1


def test_replace_with_empty_page_clears_feed(items_factory) -> None:
    assert merge(items_factory(3), [], MergeMode.REPLACE) == ()


def test_append_invariant_on_random_sequences(item_factory) -> None:
    rng = random.Random(1234)
    for _ in range(50):
        existing_ids = list(dict.fromkeys(rng.randrange(30) for _ in range(rng.randrange(15))))
        incoming_ids = [rng.randrange(30) for _ in range(rng.randrange(15))]
        existing = [item_factory(index) for index in existing_ids]
        incoming = [item_factory(index) for index in incoming_ids]

        merged = _ids(merge(existing, incoming, MergeMode.APPEND))

        assert len(merged) == len(set(merged))
        expected_new = [f"v{index}" for index in dict.fromkeys(incoming_ids) if index not in existing_ids]
        assert merged == [f"v{index}" for index in existing_ids] + expected_new


def test_custom_identity_key(item_factory) -> None:
    items = [item_factory(1, title="Same"), item_factory(2, title="Same")]
    merged = merge([], items, MergeMode.APPEND, key=lambda item: item.title)
    assert _ids(merged) == ["v1"]
