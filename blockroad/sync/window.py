from __future__ import annotations

from collections.abc import Iterable

from blockroad.domain import ClassifiedBlock

WINDOW_CAPACITY = 150


def merge(
    existing: Iterable[ClassifiedBlock],
    incoming: Iterable[ClassifiedBlock],
    *,
    capacity: int = WINDOW_CAPACITY,
) -> list[ClassifiedBlock]:
    """Incoming ahead of existing, first height wins, newest first, capped."""
    by_height: dict[int, ClassifiedBlock] = {}
    for block in list(incoming) + list(existing):
        by_height.setdefault(block.height, block)
    ordered = sorted(by_height.values(), key=lambda b: b.height, reverse=True)
    return ordered[: max(0, int(capacity))]


class WindowStore:
    """Session-scoped, height-keyed window of classified blocks.

    Every mutation leaves the window deduplicated, sorted by height descending
    and trimmed to capacity. `revision` increments on each mutation so derived
    views can be memoized against it.
    """

    def __init__(self, capacity: int = WINDOW_CAPACITY):
        self.capacity = max(1, int(capacity))
        self._blocks: tuple[ClassifiedBlock, ...] = ()
        self.revision = 0

    def __len__(self) -> int:
        return len(self._blocks)

    @property
    def blocks(self) -> tuple[ClassifiedBlock, ...]:
        return self._blocks

    @property
    def top_height(self) -> int:
        return self._blocks[0].height if self._blocks else 0

    def merge(self, incoming: Iterable[ClassifiedBlock]) -> tuple[ClassifiedBlock, ...]:
        self._blocks = tuple(merge(self._blocks, incoming, capacity=self.capacity))
        self.revision += 1
        return self._blocks

    def replace(self, blocks: Iterable[ClassifiedBlock]) -> tuple[ClassifiedBlock, ...]:
        self._blocks = tuple(merge((), blocks, capacity=self.capacity))
        self.revision += 1
        return self._blocks
