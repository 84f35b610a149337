from __future__ import annotations

import json
from pathlib import Path
from typing import Any


class SnapshotStore:
    """Shared JSON snapshot of the dashboard payload for an out-of-process dashboard."""

    def __init__(self, data_dir: str):
        self.path = Path(data_dir) / "dashboard_snapshot.json"

    def write(self, payload: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(json.dumps(payload, ensure_ascii=True, separators=(",", ":")))
        tmp.replace(self.path)

    def read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {
                "success": True,
                "status": "initializing",
                "blocks": [],
                "message": "snapshot not ready",
            }
        try:
            return json.loads(self.path.read_text())
        except (OSError, ValueError):
            return {
                "success": False,
                "status": "initializing",
                "blocks": [],
                "message": "snapshot parse error",
            }
