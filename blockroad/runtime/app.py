from __future__ import annotations

import asyncio

from blockroad.config import Settings, load_settings
from blockroad.dashboard import run_dashboard
from blockroad.data import HttpService, SnapshotStore, TronGridClient
from blockroad.infra import ErrorTracker, RuntimeEventLogger, get_logger
from blockroad.runtime.supervisor import LoopSupervisor
from blockroad.sync import SyncEngine


class App:
    """Top-level orchestrator: chain client, sync engine, dashboard."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.log = get_logger("blockroad", settings.log_level)
        self.events = RuntimeEventLogger(settings.data_dir)
        self.errors = ErrorTracker()

    def build_engine(self, http: HttpService) -> SyncEngine:
        s = self.settings
        chain = TronGridClient(http, api_key=s.api_key, base_url=s.api_base)
        return SyncEngine(
            chain,
            log=self.log,
            interval=s.sampling_interval,
            capacity=s.window_capacity,
            refresh_count=s.refresh_count,
            batch_size=s.refresh_batch_size,
            batch_delay_sec=s.refresh_batch_delay_sec,
            backfill_gap_sec=s.backfill_gap_sec,
            poll_interval_sec=s.poll_interval_sec,
            events=self.events,
        )

    async def _snapshot_loop(self, engine: SyncEngine, store: SnapshotStore) -> None:
        while True:
            try:
                store.write(engine.snapshot())
            except OSError as exc:
                self.errors.tick("snapshot_write", self.log.warning, err=exc, every=30)
            await asyncio.sleep(1.0)

    async def run(self) -> None:
        s = self.settings
        if not s.api_key:
            raise RuntimeError("TRON_API_KEY is not set. Put it in the environment or ~/.blockroad.env.")

        self.log.info(
            "starting blockroad interval=%s poll=%.1fs dashboard=%s/%s",
            s.sampling_interval,
            s.poll_interval_sec,
            s.dashboard_enabled,
            s.dashboard_mode,
        )
        http = HttpService(
            log=self.log,
            min_gap_ms=s.http_min_gap_ms,
            retries_429=s.http_retries,
            retries_5xx=s.http_retries,
            timeout=s.http_timeout_sec,
            errors=self.errors,
        )
        engine = self.build_engine(http)
        supervisor = LoopSupervisor(events=self.events)

        tasks = [supervisor.run_forever("sync", engine.run, self.log)]
        if s.dashboard_enabled:
            if s.dashboard_mode == "external":
                store = SnapshotStore(s.data_dir)
                tasks.append(supervisor.run_forever("snapshot", lambda: self._snapshot_loop(engine, store), self.log))
                tasks.append(run_dashboard(port=s.dashboard_port, log_level=s.log_level, data_dir=s.data_dir))
            else:
                tasks.append(run_dashboard(port=s.dashboard_port, log_level=s.log_level, engine=engine))

        try:
            await asyncio.gather(*tasks)
        finally:
            await http.close()


def run_main(settings: Settings) -> None:
    asyncio.run(App(settings).run())


def main() -> None:
    run_main(load_settings())
