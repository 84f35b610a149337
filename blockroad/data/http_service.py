from __future__ import annotations

import asyncio
import json
import random
import time
import urllib.parse
from collections import OrderedDict

import aiohttp

from blockroad.domain.errors import AuthError, MalformedResponseError, NetworkError
from blockroad.infra.counters import ErrorTracker


class HttpService:
    """Centralized HTTP layer with host pacing, retry/backoff and a per-request cache."""

    def __init__(
        self,
        *,
        log,
        conn_limit: int = 20,
        conn_per_host: int = 8,
        dns_ttl_sec: int = 300,
        keepalive_sec: float = 30.0,
        min_gap_ms: float = 60.0,
        retries_429: int = 2,
        retries_5xx: int = 2,
        timeout: float = 8.0,
        headers: dict[str, str] | None = None,
        errors: ErrorTracker | None = None,
        max_cache_entries: int = 4096,
    ):
        self._conn_limit = max(1, int(conn_limit))
        self._conn_per_host = max(1, int(conn_per_host))
        self._dns_ttl_sec = max(0, int(dns_ttl_sec))
        self._keepalive_sec = max(5.0, float(keepalive_sec))
        self._min_gap_s = max(0.0, float(min_gap_ms) / 1000.0)
        self._retries_429 = max(0, int(retries_429))
        self._retries_5xx = max(0, int(retries_5xx))
        self._timeout = max(0.5, float(timeout))
        self._headers = dict(headers or {})
        self._max_cache_entries = max(1, int(max_cache_entries))

        self.log = log
        self._errors = errors or ErrorTracker()

        self._session: aiohttp.ClientSession | None = None
        self._host_backoff: dict[str, float] = {}
        self._cache: OrderedDict[str, dict] = OrderedDict()
        self._host_last_ts: dict[str, float] = {}
        self._host_locks: dict[str, asyncio.Lock] = {}

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()

    async def _ensure_session(self) -> None:
        if self._session is not None and not self._session.closed:
            return
        connector = aiohttp.TCPConnector(
            limit=self._conn_limit,
            limit_per_host=self._conn_per_host,
            ttl_dns_cache=self._dns_ttl_sec,
            enable_cleanup_closed=True,
            keepalive_timeout=self._keepalive_sec,
        )
        self._session = aiohttp.ClientSession(
            connector=connector,
            headers={"User-Agent": "blockroad/1.0", **self._headers},
        )

    def _store(self, key: str, payload, ttl: float) -> None:
        now = time.time()
        expired = [k for k, v in self._cache.items() if now - v["ts"] > v["ttl"]]
        for k in expired:
            del self._cache[k]
        self._cache[key] = {"ts": now, "ttl": float(ttl), "data": payload}
        self._cache.move_to_end(key)
        while len(self._cache) > self._max_cache_entries:
            self._cache.popitem(last=False)

    async def _pace(self, host: str) -> None:
        now = time.time()
        last_ts = float(self._host_last_ts.get(host, 0.0) or 0.0)
        if last_ts > 0 and (now - last_ts) < self._min_gap_s:
            await asyncio.sleep(self._min_gap_s - (now - last_ts))
        self._host_last_ts[host] = time.time()

    async def post_json(
        self,
        url: str,
        body: dict | None = None,
        *,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        cache_ttl: float = 0.0,
        cacheable=None,
    ):
        """POST a JSON body and decode the JSON reply.

        Raises AuthError on 401/403, NetworkError on transport failures and
        exhausted 429/5xx retries, MalformedResponseError on undecodable bodies.
        Replies are cached for cache_ttl seconds when cacheable(payload) allows it.
        """
        timeout = self._timeout if timeout is None else max(0.5, float(timeout))
        host = urllib.parse.urlparse(url).netloc
        pk = json.dumps(body or {}, sort_keys=True, separators=(",", ":"))
        ck = f"{url}?{pk}"
        cached = self._cache.get(ck)
        if cached is not None and (time.time() - float(cached.get("ts", 0.0) or 0.0)) <= cache_ttl:
            return cached.get("data")

        await self._ensure_session()
        assert self._session is not None

        lock = self._host_locks.get(host)
        if lock is None:
            lock = asyncio.Lock()
            self._host_locks[host] = lock

        async with lock:
            await self._pace(host)
            bt = float(self._host_backoff.get(host, 0.0) or 0.0)
            if bt > time.time():
                raise NetworkError(f"http 429 backoff active for {host} ({bt - time.time():.0f}s left)")

        last_err: Exception | None = None
        attempts = max(1, max(self._retries_429, self._retries_5xx) + 1)
        for i in range(attempts):
            try:
                async with self._session.post(
                    url,
                    json=body or {},
                    headers=headers,
                    timeout=aiohttp.ClientTimeout(total=timeout),
                ) as r:
                    if r.status in (401, 403):
                        raise AuthError(f"http {r.status} {url}: credential rejected")

                    if r.status == 429:
                        retry_after = float(r.headers.get("Retry-After", "2") or 2.0)
                        retry_after = max(1.0, retry_after)
                        backoff_s = min(90.0, retry_after + (0.35 * i) + random.uniform(0.05, 0.35))
                        self._host_backoff[host] = max(
                            float(self._host_backoff.get(host, 0.0) or 0.0),
                            time.time() + backoff_s,
                        )
                        last_err = NetworkError(f"http 429 {url}")
                        if i < min(attempts - 1, self._retries_429):
                            await asyncio.sleep(backoff_s)
                            continue
                        break

                    if r.status >= 500:
                        last_err = NetworkError(f"http {r.status} {url}")
                        if i < min(attempts - 1, self._retries_5xx):
                            await asyncio.sleep(0.25 + (0.25 * i))
                            continue
                        break

                    if r.status >= 400:
                        raise NetworkError(f"http {r.status} {url}")

                    try:
                        payload = await r.json(content_type=None)
                    except (json.JSONDecodeError, aiohttp.ContentTypeError, UnicodeDecodeError) as exc:
                        raise MalformedResponseError(f"undecodable body from {url}: {exc}") from exc
                    if cache_ttl > 0 and (cacheable is None or cacheable(payload)):
                        self._store(ck, payload, cache_ttl)
                    return payload
            except (AuthError, NetworkError, MalformedResponseError):
                raise
            except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                last_err = exc
                if i < (attempts - 1):
                    await asyncio.sleep(0.20 + (0.15 * i))
                    continue

        self._errors.tick("http_post_json", self.log.warning, err=last_err, every=20)
        if isinstance(last_err, NetworkError):
            raise last_err
        raise NetworkError(f"http post failed: {url} err={last_err}")

