import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

import httpx

from ..config import settings
from ..services.chains import canonicalize_chain, chain_metadata
from ..services.units import to_number

logger = logging.getLogger(__name__)

CONTRACT_BATCH_SIZE = 100

# (canonical chain, lower-cased contract address or None for the native asset)
PriceKey = Tuple[str, Optional[str]]


@dataclass
class PriceTable:
    """USD prices keyed by CoinGecko coin id (natives) and (chain, contract) (tokens)."""

    native: Dict[str, float] = field(default_factory=dict)
    tokens: Dict[Tuple[str, str], float] = field(default_factory=dict)

    def price_for(self, chain: str, contract: Optional[str]) -> Optional[float]:
        canonical = canonicalize_chain(chain)
        if contract:
            return self.tokens.get((canonical, contract.strip().lower()))
        meta = chain_metadata(canonical)
        if meta is None or not meta.coingecko_native_id:
            return None
        return self.native.get(meta.coingecko_native_id)

    __call__ = price_for

    def __len__(self) -> int:
        return len(self.native) + len(self.tokens)


def _chunk(items: List[str], size: int) -> List[List[str]]:
    return [items[index:index + size] for index in range(0, len(items), size)]


class CoingeckoPriceOracle:
    """Coingecko simple-price lookups; every failure degrades to a missing price"""

    name = "coingecko"
    timeout_s = 15

    def __init__(self, *, api_key: Optional[str] = None, base_url: Optional[str] = None, enabled: Optional[bool] = None):
        self.api_key = api_key if api_key is not None else settings.coingecko_api_key
        self.base_url = (base_url or settings.coingecko_base_url).rstrip("/")
        self.enabled = settings.enable_coingecko if enabled is None else enabled

    def _build_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {"Accept": "application/json"}
        if self.api_key:
            headers["X-CG-Demo-API-Key"] = self.api_key
        return headers

    async def ready(self) -> bool:
        return self.enabled  # API key is optional for basic tier

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "Provider disabled"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                response = await client.get(f"{self.base_url}/ping", headers=self._build_headers())
                response.raise_for_status()
                return {"status": "healthy", "latency_ms": int(response.elapsed.total_seconds() * 1000)}
        except (httpx.HTTPError, RuntimeError) as e:
            return {"status": "error", "reason": str(e)}

    async def _get_json(self, client: httpx.AsyncClient, path: str, params: Dict[str, str]) -> Optional[Dict[str, Any]]:
        try:
            response = await client.get(f"{self.base_url}{path}", params=params, headers=self._build_headers())
        except httpx.HTTPError as exc:
            logger.warning("Coingecko request error path=%s error=%s", path, type(exc).__name__)
            return None
        if response.status_code != 200:
            logger.warning("Coingecko request failed path=%s status=%s", path, response.status_code)
            return None
        try:
            payload = response.json()
        except ValueError:
            logger.warning("Coingecko returned invalid JSON path=%s", path)
            return None
        return payload if isinstance(payload, dict) else None

    async def _fetch_native(self, client: httpx.AsyncClient, ids: Set[str], table: PriceTable) -> None:
        if not ids:
            return
        data = await self._get_json(client, "/simple/price", {"ids": ",".join(sorted(ids)), "vs_currencies": "usd"})
        for coin_id, payload in (data or {}).items():
            price = to_number(payload.get("usd")) if isinstance(payload, dict) else None
            if price is not None:
                table.native[coin_id] = price

    async def _fetch_tokens(
        self,
        client: httpx.AsyncClient,
        chain: str,
        platform: str,
        contracts: List[str],
        table: PriceTable,
    ) -> None:
        data = await self._get_json(
            client,
            f"/simple/token_price/{platform}",
            {"contract_addresses": ",".join(contracts), "vs_currencies": "usd"},
        )
        for contract, payload in (data or {}).items():
            price = to_number(payload.get("usd")) if isinstance(payload, dict) else None
            if price is not None:
                table.tokens[(chain, contract.lower())] = price

    async def fetch_prices(self, keys: Iterable[PriceKey]) -> PriceTable:
        """Fetch USD prices for the given keys, batching contracts per platform."""

        table = PriceTable()
        if not self.enabled:
            return table

        native_ids: Set[str] = set()
        contracts_by_chain: Dict[str, Set[str]] = {}
        for chain, contract in keys:
            canonical = canonicalize_chain(chain)
            meta = chain_metadata(canonical)
            if meta is None:
                continue
            if contract:
                if meta.coingecko_platform:
                    contracts_by_chain.setdefault(canonical, set()).add(contract.strip().lower())
            elif meta.coingecko_native_id:
                native_ids.add(meta.coingecko_native_id)

        async with httpx.AsyncClient(timeout=self.timeout_s) as client:
            tasks = [self._fetch_native(client, native_ids, table)]
            for chain, contracts in contracts_by_chain.items():
                platform = chain_metadata(chain).coingecko_platform
                for batch in _chunk(sorted(contracts), CONTRACT_BATCH_SIZE):
                    tasks.append(self._fetch_tokens(client, chain, platform, batch, table))
            results = await asyncio.gather(*tasks, return_exceptions=True)

        for result in results:
            if isinstance(result, Exception):
                logger.warning("Coingecko price batch failed error=%s", type(result).__name__)
        return table


__all__ = ["CONTRACT_BATCH_SIZE", "CoingeckoPriceOracle", "PriceKey", "PriceTable"]
