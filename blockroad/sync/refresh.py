from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from blockroad.domain import ChainError, ClassifiedBlock, classify
from blockroad.sync.poller import ChainAccessor

log = logging.getLogger("blockroad.refresh")

REFRESH_COUNT = 60
BATCH_SIZE = 5


@dataclass
class RefreshResult:
    generation: int
    head: int
    heights: list[int] = field(default_factory=list)
    blocks: list[ClassifiedBlock] = field(default_factory=list)

    @property
    def dropped(self) -> int:
        return len(self.heights) - len(self.blocks)


def refresh_heights(head: int, interval: int, count: int = REFRESH_COUNT) -> list[int]:
    """`count` sample heights stepping back from the aligned head, newest first."""
    top = head
    if interval > 1:
        top = (head // interval) * interval
    return [h for h in (top - i * interval for i in range(count)) if h >= 0]


async def _fetch_one(chain: ChainAccessor, height: int) -> ClassifiedBlock | None:
    try:
        return classify(await chain.get_by_height(height))
    except ChainError as exc:
        log.debug("refresh skip height=%s err=%s", height, exc)
        return None


async def full_refresh(
    chain: ChainAccessor,
    interval: int,
    *,
    generation: int = 0,
    count: int = REFRESH_COUNT,
    batch_size: int = BATCH_SIZE,
    batch_delay_sec: float = 0.0,
) -> RefreshResult:
    """Rebuild a window's worth of samples from the current head.

    Head failures propagate. Batch members that fail are dropped.
    """
    head = await chain.get_head()
    heights = refresh_heights(head.height, interval, count)
    batch_size = max(1, int(batch_size))

    blocks: list[ClassifiedBlock] = []
    for i in range(0, len(heights), batch_size):
        if i and batch_delay_sec > 0:
            await asyncio.sleep(batch_delay_sec)
        batch = heights[i : i + batch_size]
        results = await asyncio.gather(*[_fetch_one(chain, h) for h in batch])
        blocks.extend(b for b in results if b is not None)

    blocks.sort(key=lambda b: b.height, reverse=True)
    return RefreshResult(generation=generation, head=head.height, heights=heights, blocks=blocks)
