from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Parity(str, Enum):
    ODD = "ODD"
    EVEN = "EVEN"


class SizeClass(str, Enum):
    BIG = "BIG"
    SMALL = "SMALL"


class SyncState(str, Enum):
    INITIALIZING = "initializing"
    SYNCING = "syncing"
    STABLE = "stable"


SAMPLING_INTERVALS = (1, 20, 60, 100)


@dataclass(frozen=True)
class RawBlock:
    height: int
    hash: str
    timestamp: int


@dataclass(frozen=True)
class Outcome:
    result_value: int
    parity: Parity
    size_class: SizeClass


@dataclass(frozen=True)
class ClassifiedBlock:
    height: int
    hash: str
    result_value: int
    parity: Parity
    size_class: SizeClass
    observed_at: str

    def to_dict(self) -> dict:
        return {
            "height": self.height,
            "hash": self.hash,
            "resultValue": self.result_value,
            "type": self.parity.value,
            "sizeType": self.size_class.value,
            "timestamp": self.observed_at,
        }


@dataclass(frozen=True)
class RoadCell:
    cls: Parity | SizeClass | None = None
    value: int | None = None

    @property
    def empty(self) -> bool:
        return self.cls is None

    def to_dict(self) -> dict:
        if self.cls is None:
            return {"type": None}
        return {"type": self.cls.value, "value": self.value}


EMPTY_CELL = RoadCell()


def check_interval(interval: int) -> int:
    value = int(interval)
    if value not in SAMPLING_INTERVALS:
        raise ValueError(f"unsupported sampling interval {interval}; expected one of {SAMPLING_INTERVALS}")
    return value
