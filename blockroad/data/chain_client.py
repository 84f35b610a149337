from __future__ import annotations

from blockroad.data.http_service import HttpService
from blockroad.domain import AuthError, MalformedResponseError, NetworkError, NotFoundError, RawBlock, parse_tron_block

# Produced blocks never change, so by-height lookups can be reused for a while.
BLOCK_CACHE_TTL = 300.0


def _has_block_id(payload) -> bool:
    return isinstance(payload, dict) and bool(payload.get("blockID"))


class TronGridClient:
    """Chain head and block-by-height accessors over the TronGrid wallet API."""

    def __init__(self, http: HttpService, *, api_key: str, base_url: str = "https://api.trongrid.io"):
        self.http = http
        self.api_key = (api_key or "").strip()
        self.base_url = base_url.rstrip("/")

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            raise AuthError("TRON api key is not configured")
        return {
            "Accept": "application/json",
            "TRON-PRO-API-KEY": self.api_key,
        }

    async def _call(self, path: str, body: dict, *, cache_ttl: float = 0.0, cacheable=None):
        payload = await self.http.post_json(
            f"{self.base_url}{path}",
            body,
            headers=self._headers(),
            cache_ttl=cache_ttl,
            cacheable=cacheable,
        )
        if isinstance(payload, dict) and payload.get("Error"):
            raise NetworkError(f"{path}: {payload['Error']}")
        return payload

    async def get_head(self) -> RawBlock:
        payload = await self._call("/wallet/getnowblock", {})
        return parse_tron_block(payload)

    async def get_by_height(self, height: int) -> RawBlock:
        payload = await self._call(
            "/wallet/getblockbynum",
            {"num": int(height)},
            cache_ttl=BLOCK_CACHE_TTL,
            cacheable=_has_block_id,
        )
        if not isinstance(payload, dict) or not payload.get("blockID"):
            raise NotFoundError(f"block {height} not found or invalid")
        raw = parse_tron_block(payload)
        if raw.height != int(height):
            raise MalformedResponseError(f"asked for block {height}, got {raw.height}")
        return raw
