import asyncio
import logging

import pytest

from blockroad.domain import NetworkError, NotFoundError, RawBlock

BASE_TS = 1_700_000_000_000


def hash_for(height: int, digit: int) -> str:
    return f"{height:016x}".replace("0", "a") + "deadbeef" * 5 + f"{digit}c"


class FakeChain:
    """In-memory chain accessor. Block at height h hashes to digit h % 10 by default."""

    def __init__(self, head: int, *, missing=(), head_error=None, digit=None, head_gates=None, bad_timestamps=()):
        self.head = head
        self.missing = set(missing)
        self.head_error = head_error
        self.digit = digit or (lambda h: h % 10)
        self.head_gates = list(head_gates or [])
        self.bad_timestamps = set(bad_timestamps)
        self.head_calls = 0
        self.calls: list[int] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def block(self, height: int) -> RawBlock:
        timestamp = 10**20 if height in self.bad_timestamps else BASE_TS + height * 3000
        return RawBlock(height=height, hash=hash_for(height, self.digit(height)), timestamp=timestamp)

    async def get_head(self) -> RawBlock:
        self.head_calls += 1
        if self.head_gates:
            await self.head_gates.pop(0).wait()
        if self.head_error is not None:
            raise self.head_error
        return self.block(self.head)

    async def get_by_height(self, height: int) -> RawBlock:
        self.calls.append(height)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if height in self.missing:
                raise NetworkError(f"boom {height}")
            if height > self.head or height < 0:
                raise NotFoundError(f"block {height} not found")
            return self.block(height)
        finally:
            self.in_flight -= 1


@pytest.fixture
def log():
    return logging.getLogger("blockroad.tests")


@pytest.fixture
def make_chain():
    return FakeChain
