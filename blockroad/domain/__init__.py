from .errors import AuthError, ChainError, MalformedResponseError, NetworkError, NotFoundError
from .models import (
    EMPTY_CELL,
    SAMPLING_INTERVALS,
    ClassifiedBlock,
    Outcome,
    Parity,
    RawBlock,
    RoadCell,
    SizeClass,
    SyncState,
    check_interval,
)
from .outcome import classify, derive, format_timestamp, is_aligned, parse_tron_block

__all__ = [
    "AuthError",
    "ChainError",
    "MalformedResponseError",
    "NetworkError",
    "NotFoundError",
    "EMPTY_CELL",
    "SAMPLING_INTERVALS",
    "ClassifiedBlock",
    "Outcome",
    "Parity",
    "RawBlock",
    "RoadCell",
    "SizeClass",
    "SyncState",
    "check_interval",
    "classify",
    "derive",
    "format_timestamp",
    "is_aligned",
    "parse_tron_block",
]
