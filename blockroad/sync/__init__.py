from .engine import SyncEngine
from .poller import GapPoller, PollerState, PollResult, ReconcileContext, missed_heights
from .refresh import RefreshResult, full_refresh, refresh_heights
from .window import WINDOW_CAPACITY, WindowStore, merge

__all__ = [
    "SyncEngine",
    "GapPoller",
    "PollerState",
    "PollResult",
    "ReconcileContext",
    "missed_heights",
    "RefreshResult",
    "full_refresh",
    "refresh_heights",
    "WINDOW_CAPACITY",
    "WindowStore",
    "merge",
]
