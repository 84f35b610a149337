from .chain_client import TronGridClient
from .http_service import HttpService
from .snapshot_store import SnapshotStore

__all__ = ["HttpService", "SnapshotStore", "TronGridClient"]
