import asyncio

from blockroad.domain import NetworkError, Parity, SyncState
from blockroad.sync.engine import REFRESH_ERROR, SyncEngine


def make_engine(chain, log, **kw) -> SyncEngine:
    kw.setdefault("batch_delay_sec", 0.0)
    kw.setdefault("backfill_gap_sec", 0.0)
    return SyncEngine(chain, log=log, **kw)


def test_refresh_then_layout_end_to_end(make_chain, log) -> None:
    chain = make_chain(head=5000)
    engine = make_engine(chain, log)
    assert engine.state is SyncState.INITIALIZING

    assert asyncio.run(engine.refresh()) is True
    heights = [b.height for b in engine.window.blocks]
    assert heights == list(range(5000, 4940, -1))
    assert engine.state is SyncState.STABLE

    top = engine.window.blocks[0]
    assert top.hash == "aaaaaaaaaaaa1388deadbeefdeadbeefdeadbeefdeadbeefdeadbeef0c"
    assert top.result_value == 0
    assert top.parity is Parity.EVEN

    # digits alternate with height, so every block is its own streak
    grid = engine.grid("trend", "parity")
    assert len(grid) == 60
    assert [col[0].value for col in grid] == [h % 10 for h in range(4941, 5001)]
    assert all(cell.empty for col in grid for cell in col[1:])


def test_poll_merges_gap(make_chain, log) -> None:
    async def scenario():
        chain = make_chain(head=1000)
        engine = make_engine(chain, log, refresh_count=10)
        await engine.refresh()
        chain.head = 1004
        res = await engine.poll_once()
        return engine, res

    engine, res = asyncio.run(scenario())
    assert res.status == "merged"
    assert engine.window.top_height == 1004
    assert [b.height for b in engine.window.blocks][:6] == [1004, 1003, 1002, 1001, 1000, 999]


def test_poll_reads_current_interval(make_chain, log) -> None:
    async def scenario():
        chain = make_chain(head=1000)
        engine = make_engine(chain, log, refresh_count=5)
        await engine.refresh()
        engine.interval = 20
        chain.head = 1105
        res = await engine.poll_once()
        return res

    res = asyncio.run(scenario())
    assert res.missed == [1020, 1040, 1060, 1080, 1100]


def test_filter_suspends_polling(make_chain, log) -> None:
    async def scenario():
        chain = make_chain(head=1000)
        engine = make_engine(chain, log, refresh_count=30)
        await engine.refresh()
        await engine.set_query("99")
        calls = chain.head_calls
        chain.head = 1010
        res = await engine.poll_once()
        return engine, res, calls, chain.head_calls

    engine, res, before, after = asyncio.run(scenario())
    assert res.status == "suspended"
    assert before == after
    assert {b.height for b in engine.blocks()} == set(range(990, 1000))
    assert engine.window.top_height == 1000


def test_clearing_filter_refreshes(make_chain, log) -> None:
    async def scenario():
        chain = make_chain(head=1000)
        engine = make_engine(chain, log, refresh_count=5)
        await engine.refresh()
        await engine.set_query("abc")
        chain.head = 1050
        await engine.set_query("")
        return engine

    engine = asyncio.run(scenario())
    assert engine.query == ""
    assert engine.window.top_height == 1050


def test_stale_refresh_is_discarded(make_chain, log) -> None:
    async def scenario():
        gate = asyncio.Event()
        chain = make_chain(head=1000, head_gates=[gate])
        engine = make_engine(chain, log, refresh_count=10)
        slow = asyncio.create_task(engine.refresh())
        await asyncio.sleep(0)
        suspended = engine.polling_suspended
        fresh = await engine.set_interval(20)
        gate.set()
        return engine, suspended, fresh, await slow

    engine, suspended, fresh, slow = asyncio.run(scenario())
    assert suspended is True
    assert fresh is True
    assert slow is False
    assert [b.height for b in engine.window.blocks] == list(range(1000, 800, -20))


def test_refresh_failure_surfaces_error_and_keeps_window(make_chain, log) -> None:
    async def scenario():
        chain = make_chain(head=1000)
        engine = make_engine(chain, log, refresh_count=5)
        await engine.refresh()
        chain.head_error = NetworkError("down")
        ok = await engine.refresh()
        return engine, ok

    engine, ok = asyncio.run(scenario())
    assert ok is False
    assert engine.error == REFRESH_ERROR
    assert len(engine.window) == 5


def test_refresh_with_no_blocks_is_an_error(make_chain, log) -> None:
    chain = make_chain(head=1000, missing=set(range(990, 1001)))
    engine = make_engine(chain, log, refresh_count=5)
    assert asyncio.run(engine.refresh()) is False
    assert engine.error == REFRESH_ERROR
    assert len(engine.window) == 0


def test_background_poll_failure_is_quiet_and_next_success_clears_error(make_chain, log) -> None:
    async def scenario():
        chain = make_chain(head=1000)
        engine = make_engine(chain, log, refresh_count=5)
        await engine.refresh()
        chain.head_error = NetworkError("down")
        await engine.refresh()
        surfaced = engine.error
        failed = await engine.poll_once()
        chain.head_error = None
        chain.head = 1001
        ok = await engine.poll_once()
        return engine, surfaced, failed, ok

    engine, surfaced, failed, ok = asyncio.run(scenario())
    assert surfaced == REFRESH_ERROR
    assert failed.status == "failed"
    assert ok.status == "merged"
    assert engine.error is None
    assert engine.window.top_height == 1001


def test_grid_is_memoized_per_revision(make_chain, log) -> None:
    async def scenario():
        chain = make_chain(head=1000)
        engine = make_engine(chain, log, refresh_count=5)
        await engine.refresh()
        first = engine.grid("bead", "size")
        again = engine.grid("bead", "size")
        chain.head = 1001
        await engine.poll_once()
        return first, again, engine.grid("bead", "size")

    first, again, after = asyncio.run(scenario())
    assert first is again
    assert after is not first


def test_snapshot_shape(make_chain, log) -> None:
    chain = make_chain(head=1000)
    engine = make_engine(chain, log, refresh_count=5)
    asyncio.run(engine.refresh())
    snap = engine.snapshot(limit=2)
    assert snap["status"]["state"] == "stable"
    assert snap["stats"]["total"] == 5
    assert [b["height"] for b in snap["blocks"]] == [1000, 999]
    assert set(snap["roads"]) == {"trend:parity", "trend:size", "bead:parity", "bead:size"}
