from __future__ import annotations

from collections import defaultdict


class ErrorTracker:
    """Lightweight error counters with periodic surfacing."""

    def __init__(self):
        self.counts = defaultdict(int)

    def tick(self, key: str, log_fn, err=None, every: int = 25) -> int:
        self.counts[key] += 1
        n = self.counts[key]
        if n % every == 0:
            suffix = f" last={err}" if err else ""
            log_fn(f"{key} repeated {n}x{suffix}")
        return n

    def reset(self, key: str) -> None:
        self.counts.pop(key, None)
