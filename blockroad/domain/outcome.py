from __future__ import annotations

import re
from datetime import datetime

from blockroad.domain.errors import MalformedResponseError
from blockroad.domain.models import ClassifiedBlock, Outcome, Parity, RawBlock, SizeClass

_DIGIT = re.compile(r"\d")

BIG_THRESHOLD = 5


def derive(block_hash: str | None) -> Outcome:
    """Classify a hash by its last decimal digit; no digits means 0."""
    digits = _DIGIT.findall(block_hash or "")
    value = int(digits[-1]) if digits else 0
    return Outcome(
        result_value=value,
        parity=Parity.EVEN if value % 2 == 0 else Parity.ODD,
        size_class=SizeClass.BIG if value >= BIG_THRESHOLD else SizeClass.SMALL,
    )


def is_aligned(height: int, interval: int) -> bool:
    if interval == 1:
        return True
    return height % interval == 0


def format_timestamp(ts_ms: int) -> str:
    return datetime.fromtimestamp(ts_ms / 1000.0).strftime("%Y-%m-%d %H:%M:%S")


def classify(raw: RawBlock) -> ClassifiedBlock:
    try:
        observed_at = format_timestamp(raw.timestamp)
    except (OSError, OverflowError, ValueError) as exc:
        raise MalformedResponseError(f"block {raw.height} has unusable timestamp {raw.timestamp}: {exc}") from exc
    out = derive(raw.hash)
    return ClassifiedBlock(
        height=raw.height,
        hash=raw.hash,
        result_value=out.result_value,
        parity=out.parity,
        size_class=out.size_class,
        observed_at=observed_at,
    )


def parse_tron_block(payload) -> RawBlock:
    """Pull height/hash/timestamp out of a TronGrid block payload."""
    if not isinstance(payload, dict):
        raise MalformedResponseError(f"expected object, got {type(payload).__name__}")
    block_id = payload.get("blockID")
    if not block_id or not isinstance(block_id, str):
        raise MalformedResponseError("block payload missing blockID")
    try:
        raw_data = payload["block_header"]["raw_data"]
        height = int(raw_data["number"])
        timestamp = int(raw_data["timestamp"])
    except (KeyError, TypeError, ValueError) as exc:
        raise MalformedResponseError(f"block {block_id} missing header field: {exc}") from exc
    return RawBlock(height=height, hash=block_id, timestamp=timestamp)
