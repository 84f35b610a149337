import asyncio

from blockroad.domain import NetworkError
from blockroad.sync.poller import GapPoller, PollerState, ReconcileContext, missed_heights


def test_missed_heights_every_block() -> None:
    assert missed_heights(100, 104, 1) == [101, 102, 103, 104]
    assert missed_heights(104, 104, 1) == []
    assert missed_heights(110, 104, 1) == []


def test_missed_heights_aligned() -> None:
    assert missed_heights(1000, 1105, 20) == [1020, 1040, 1060, 1080, 1100]
    assert missed_heights(1000, 1019, 20) == []


def test_missed_heights_capped_for_empty_window() -> None:
    out = missed_heights(0, 10_000, 100, limit=5)
    assert out == [9600, 9700, 9800, 9900, 10_000]


def test_tick_backfills_gap(make_chain) -> None:
    chain = make_chain(head=105)
    poller = GapPoller(chain)
    res = asyncio.run(poller.tick(ReconcileContext(top_height=100, interval=1)))
    assert res.status == "merged"
    assert res.head == 105
    assert [b.height for b in res.blocks] == [101, 102, 103, 104, 105]
    assert chain.max_in_flight == 1
    assert poller.state is PollerState.IDLE


def test_tick_swallows_per_height_failures(make_chain) -> None:
    chain = make_chain(head=105, missing={102, 104})
    poller = GapPoller(chain)
    res = asyncio.run(poller.tick(ReconcileContext(top_height=100, interval=1)))
    assert res.status == "merged"
    assert res.missed == [101, 102, 103, 104, 105]
    assert [b.height for b in res.blocks] == [101, 103, 105]
    assert chain.calls.count(102) == 1


def test_tick_up_to_date(make_chain) -> None:
    chain = make_chain(head=100)
    res = asyncio.run(GapPoller(chain).tick(ReconcileContext(top_height=100, interval=1)))
    assert res.status == "up_to_date"
    assert chain.calls == []


def test_tick_head_failure_returns_to_idle(make_chain) -> None:
    chain = make_chain(head=100, head_error=NetworkError("down"))
    poller = GapPoller(chain)
    res = asyncio.run(poller.tick(ReconcileContext(top_height=90, interval=1)))
    assert res.status == "failed"
    assert "down" in res.error
    assert poller.state is PollerState.IDLE


def test_busy_guard_drops_reentrant_tick(make_chain) -> None:
    async def scenario():
        gate = asyncio.Event()
        chain = make_chain(head=103, head_gates=[gate])
        poller = GapPoller(chain)
        ctx = ReconcileContext(top_height=100, interval=1)
        first = asyncio.create_task(poller.tick(ctx))
        await asyncio.sleep(0)
        in_flight = poller.state
        second = await poller.tick(ctx)
        gate.set()
        return in_flight, second, await first, poller.state, chain.head_calls

    in_flight, second, first, after, head_calls = asyncio.run(scenario())
    assert in_flight is PollerState.RECONCILING
    assert second.status == "busy"
    assert first.status == "merged"
    assert after is PollerState.IDLE
    assert head_calls == 1


def test_tick_skips_block_with_unusable_timestamp(make_chain) -> None:
    chain = make_chain(head=104, bad_timestamps={102})
    poller = GapPoller(chain)
    res = asyncio.run(poller.tick(ReconcileContext(top_height=100, interval=1)))
    assert res.status == "merged"
    assert [b.height for b in res.blocks] == [101, 103, 104]
    assert poller.state is PollerState.IDLE
