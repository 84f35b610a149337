from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from blockroad.domain import ChainError, ClassifiedBlock, RawBlock, classify, is_aligned

log = logging.getLogger("blockroad.poller")


class ChainAccessor(Protocol):
    async def get_head(self) -> RawBlock: ...

    async def get_by_height(self, height: int) -> RawBlock: ...


class PollerState(str, Enum):
    IDLE = "idle"
    RECONCILING = "reconciling"


@dataclass(frozen=True)
class ReconcileContext:
    """Inputs for one reconciliation pass, read fresh at tick time."""

    top_height: int
    interval: int
    max_heights: int = 150


@dataclass
class PollResult:
    status: str
    head: int = 0
    missed: list[int] = field(default_factory=list)
    blocks: list[ClassifiedBlock] = field(default_factory=list)
    error: str = ""

    @property
    def fetched(self) -> int:
        return len(self.blocks)


def missed_heights(top_height: int, head: int, interval: int, *, limit: int | None = None) -> list[int]:
    """Aligned heights in (top_height, head], ascending, keeping only the newest `limit`."""
    if head <= top_height:
        return []
    start = top_height + 1
    if limit is not None:
        # an empty window would otherwise enumerate the whole chain
        start = max(start, head - limit * interval + 1)
    return [h for h in range(start, head + 1) if is_aligned(h, interval)]


async def fetch_each(chain: ChainAccessor, heights: list[int], *, gap_sec: float = 0.0) -> list[ClassifiedBlock]:
    """Fetch heights one at a time; a failing height is skipped, never retried."""
    out: list[ClassifiedBlock] = []
    for i, height in enumerate(heights):
        if i and gap_sec > 0:
            await asyncio.sleep(gap_sec)
        try:
            out.append(classify(await chain.get_by_height(height)))
        except ChainError as exc:
            log.debug("backfill skip height=%s err=%s", height, exc)
    return out


class GapPoller:
    """Head-tracking reconciler with a non-queuing busy guard.

    The poller does not own the window: `tick` reads the caller's context and
    returns the classified blocks for the caller to merge.
    """

    def __init__(self, chain: ChainAccessor, *, gap_sec: float = 0.0):
        self.chain = chain
        self.gap_sec = max(0.0, float(gap_sec))
        self.state = PollerState.IDLE
        self.backfilling = False

    async def tick(self, ctx: ReconcileContext) -> PollResult:
        if self.state is PollerState.RECONCILING:
            return PollResult(status="busy")
        self.state = PollerState.RECONCILING
        try:
            try:
                head = await self.chain.get_head()
            except ChainError as exc:
                return PollResult(status="failed", error=str(exc))

            heights = missed_heights(ctx.top_height, head.height, ctx.interval, limit=ctx.max_heights)
            if not heights:
                return PollResult(status="up_to_date", head=head.height)

            self.backfilling = True
            try:
                blocks = await fetch_each(self.chain, heights, gap_sec=self.gap_sec)
            finally:
                self.backfilling = False
            return PollResult(status="merged", head=head.height, missed=heights, blocks=blocks)
        finally:
            self.state = PollerState.IDLE
