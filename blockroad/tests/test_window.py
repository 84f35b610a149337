from blockroad.domain import RawBlock, classify
from blockroad.sync.window import WINDOW_CAPACITY, WindowStore, merge


def blk(height: int, block_hash: str | None = None):
    return classify(RawBlock(height=height, hash=block_hash or f"h{height}", timestamp=1_700_000_000_000))


def test_merge_sorts_descending_and_dedupes() -> None:
    out = merge([blk(3), blk(1)], [blk(2), blk(3)])
    assert [b.height for b in out] == [3, 2, 1]


def test_merge_incoming_wins() -> None:
    existing = [blk(10, "old1")]
    incoming = [blk(10, "new8")]
    out = merge(existing, incoming)
    assert len(out) == 1
    assert out[0].hash == "new8"
    assert out[0].result_value == 8


def test_merge_idempotent() -> None:
    existing = [blk(h) for h in range(100, 0, -3)]
    incoming = [blk(h, f"x{h}") for h in range(90, 130)]
    once = merge(existing, incoming)
    assert merge(once, incoming) == once


def test_capacity_keeps_highest() -> None:
    store = WindowStore()
    for start in range(0, 1000, 70):
        store.merge([blk(h) for h in range(start, start + 70)])
        assert len(store) <= WINDOW_CAPACITY
    heights = [b.height for b in store.blocks]
    assert heights == list(range(1049, 1049 - WINDOW_CAPACITY, -1))


def test_store_revision_and_top() -> None:
    store = WindowStore(capacity=5)
    assert store.top_height == 0
    assert store.revision == 0
    store.replace([blk(1), blk(9), blk(4)])
    assert store.top_height == 9
    assert store.revision == 1
    store.merge([blk(12)])
    assert [b.height for b in store.blocks] == [12, 9, 4, 1]
    store.replace([blk(2)])
    assert [b.height for b in store.blocks] == [2]
    assert store.revision == 3
