from __future__ import annotations

import asyncio
import time

from blockroad.domain import ChainError, ClassifiedBlock, SyncState, check_interval
from blockroad.infra import ErrorTracker, NullEventLogger
from blockroad.road import bead_grid, grid_to_json, road_stats, trend_grid
from blockroad.sync.poller import ChainAccessor, GapPoller, PollResult, ReconcileContext
from blockroad.sync.refresh import BATCH_SIZE, REFRESH_COUNT, full_refresh
from blockroad.sync.window import WINDOW_CAPACITY, WindowStore

REFRESH_ERROR = "chain request failed; check that the API key is valid and TronGrid is reachable"

VIEWS = {
    "trend": trend_grid,
    "bead": bead_grid,
}


def matches(block: ClassifiedBlock, query: str) -> bool:
    q = query.strip().lower()
    return q in str(block.height) or q in block.hash.lower()


class SyncEngine:
    """Session state: the window, the selected interval and the live poll loop.

    Full refreshes and poll ticks are the only writers of the window and never
    interleave: ticks are skipped while a refresh is in flight or a text filter
    is active. Each refresh gets a generation number; results from an older
    generation than the current one are discarded.
    """

    def __init__(
        self,
        chain: ChainAccessor,
        *,
        log,
        interval: int = 1,
        capacity: int = WINDOW_CAPACITY,
        refresh_count: int = REFRESH_COUNT,
        batch_size: int = BATCH_SIZE,
        batch_delay_sec: float = 0.2,
        backfill_gap_sec: float = 0.1,
        poll_interval_sec: float = 3.0,
        events=None,
    ):
        self.chain = chain
        self.log = log
        self.events = events or NullEventLogger()
        self.window = WindowStore(capacity)
        self.poller = GapPoller(chain, gap_sec=backfill_gap_sec)
        self.interval = check_interval(interval)
        self.refresh_count = max(1, int(refresh_count))
        self.batch_size = max(1, int(batch_size))
        self.batch_delay_sec = max(0.0, float(batch_delay_sec))
        self.poll_interval_sec = max(0.05, float(poll_interval_sec))

        self.query = ""
        self.error: str | None = None
        self.generation = 0
        self.last_head = 0
        self._refreshing = 0
        self._initialized = False
        self._errors = ErrorTracker()
        self._view_cache: dict[tuple, list] = {}

    @property
    def state(self) -> SyncState:
        if not self._initialized:
            return SyncState.INITIALIZING
        if self._refreshing or self.poller.backfilling:
            return SyncState.SYNCING
        return SyncState.STABLE

    @property
    def refreshing(self) -> bool:
        return self._refreshing > 0

    @property
    def polling_suspended(self) -> bool:
        return bool(self.query) or self.refreshing

    async def refresh(self) -> bool:
        """Wholesale rebuild of the window for the current interval.

        Returns True when the result was applied. Failures set the visible
        error signal and leave the previous window in place.
        """
        self.generation += 1
        generation = self.generation
        interval = self.interval
        self._refreshing += 1
        started = time.time()
        try:
            result = await full_refresh(
                self.chain,
                interval,
                generation=generation,
                count=self.refresh_count,
                batch_size=self.batch_size,
                batch_delay_sec=self.batch_delay_sec,
            )
        except ChainError as exc:
            if generation == self.generation:
                self.error = REFRESH_ERROR
            self.log.error("refresh failed gen=%s interval=%s err=%s", generation, interval, exc)
            self.events.emit("sync.refresh_error", generation=generation, interval=interval, error=str(exc))
            return False
        finally:
            self._refreshing -= 1

        if generation != self.generation:
            self.log.info("refresh gen=%s superseded by gen=%s; discarded", generation, self.generation)
            self.events.emit("sync.refresh_stale", generation=generation, current=self.generation)
            return False

        self.last_head = max(self.last_head, result.head)
        if result.heights and not result.blocks:
            self.error = REFRESH_ERROR
            self.log.error("refresh gen=%s fetched 0/%s blocks", generation, len(result.heights))
            self.events.emit("sync.refresh_error", generation=generation, interval=interval, error="no blocks")
            return False

        self.window.replace(result.blocks)
        self.error = None
        self._initialized = True
        self.log.info(
            "refresh gen=%s interval=%s head=%s blocks=%s/%s in %.2fs",
            generation,
            interval,
            result.head,
            len(result.blocks),
            len(result.heights),
            time.time() - started,
        )
        self.events.emit(
            "sync.refresh",
            generation=generation,
            interval=interval,
            head=result.head,
            fetched=len(result.blocks),
            dropped=result.dropped,
        )
        return True

    async def set_interval(self, interval: int) -> bool:
        self.interval = check_interval(interval)
        return await self.refresh()

    async def set_query(self, query: str) -> bool:
        """Set the text filter; an empty query returns to the live view."""
        self.query = (query or "").strip()
        if self.query:
            self.log.info("filter active query=%r; polling suspended", self.query)
            return True
        return await self.refresh()

    def context(self) -> ReconcileContext:
        return ReconcileContext(
            top_height=self.window.top_height,
            interval=self.interval,
            max_heights=self.window.capacity,
        )

    async def poll_once(self) -> PollResult:
        if self.polling_suspended:
            return PollResult(status="suspended")
        generation = self.generation
        result = await self.poller.tick(self.context())

        if result.status == "busy":
            return result
        if result.status == "failed":
            self._errors.tick("poll_head", self.log.warning, err=result.error, every=10)
            self.log.debug("poll tick failed err=%s", result.error)
            return result

        self._errors.reset("poll_head")
        self.last_head = max(self.last_head, result.head)
        self.error = None
        if result.status != "merged":
            return result

        if generation != self.generation or self.query:
            self.log.info("poll pass discarded; window reset while in flight")
            return PollResult(status="discarded", head=result.head, missed=result.missed)

        if result.blocks:
            self.window.merge(result.blocks)
            self._initialized = True
        self.log.info(
            "poll head=%s backfilled=%s/%s top=%s",
            result.head,
            result.fetched,
            len(result.missed),
            self.window.top_height,
        )
        self.events.emit(
            "sync.poll",
            head=result.head,
            missed=len(result.missed),
            fetched=result.fetched,
        )
        return result

    async def run(self) -> None:
        if not self._initialized:
            await self.refresh()
        while True:
            await asyncio.sleep(self.poll_interval_sec)
            await self.poll_once()

    def blocks(self) -> list[ClassifiedBlock]:
        """Current view: the window, or its filtered snapshot while a query is active."""
        if not self.query:
            return list(self.window.blocks)
        return [b for b in self.window.blocks if matches(b, self.query)]

    def grid(self, view: str = "trend", mode: str = "parity") -> list:
        if view not in VIEWS:
            raise ValueError(f"unknown road view {view!r}; expected one of {sorted(VIEWS)}")
        key = (self.window.revision, self.query, view, mode)
        cached = self._view_cache.get(key)
        if cached is None:
            cached = VIEWS[view](self.blocks(), mode)
            self._view_cache = {k: v for k, v in self._view_cache.items() if k[:2] == key[:2]}
            self._view_cache[key] = cached
        return cached

    def status(self) -> dict:
        return {
            "state": self.state.value,
            "interval": self.interval,
            "query": self.query,
            "error": self.error,
            "generation": self.generation,
            "head": self.last_head,
            "top": self.window.top_height,
            "count": len(self.window),
        }

    def snapshot(self, *, limit: int | None = None) -> dict:
        blocks = self.blocks()
        return {
            "success": True,
            "status": self.status(),
            "stats": road_stats(blocks),
            "blocks": [b.to_dict() for b in blocks[:limit]],
            "roads": {
                f"{view}:{mode}": grid_to_json(self.grid(view, mode))
                for view in VIEWS
                for mode in ("parity", "size")
            },
        }
