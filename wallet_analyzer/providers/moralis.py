import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import quote

import httpx

from ..config import settings
from ..services.units import isoformat_utc, to_int
from ..types import RawBalance, RawTransaction
from .base import (
    ProviderConfigurationError,
    ProviderRequestError,
    WalletDataProvider,
    raise_for_status,
    within_lookback,
)
from .fanout import collect, settle_all
from .pagination import paginate_cursor

logger = logging.getLogger(__name__)


def to_raw_balance(item: Mapping[str, Any], chain: str) -> RawBalance:
    native = bool(item.get("native_token"))
    return RawBalance(
        chain=chain,
        symbol=item.get("symbol"),
        name=item.get("name"),
        contract_address=None if native else item.get("token_address"),
        token_type="native" if native else "erc20",
        decimals_hints=(item.get("decimals"),),
        amount_decimal=item.get("balance_formatted"),
        raw_amount=item.get("balance"),
        value_usd=item.get("usd_value"),
        price_usd=item.get("usd_price"),
        change_24h=item.get("usd_value_24hr_usd_change"),
        is_native=native,
        is_verified=item.get("verified_contract"),
        is_scam=item.get("possible_spam"),
        logo=item.get("logo") or item.get("thumbnail"),
    )


def _fee_raw(item: Mapping[str, Any]) -> Optional[int]:
    gas_price = to_int(item.get("gas_price"))
    gas_used = to_int(item.get("receipt_gas_used"))
    if gas_price is None or gas_used is None:
        return None
    return gas_price * gas_used


def to_raw_transaction(item: Mapping[str, Any], chain: str) -> RawTransaction:
    return RawTransaction(
        hash=item.get("hash"),
        block_hash=item.get("block_hash"),
        block_height=item.get("block_number"),
        timestamp=item.get("block_timestamp"),
        chain=chain,
        from_address=item.get("from_address"),
        to_address=item.get("to_address"),
        from_label=item.get("from_address_label"),
        to_label=item.get("to_address_label"),
        value_raw=item.get("value"),
        fee_raw=_fee_raw(item),
        status=item.get("receipt_status"),
    )


class MoralisProvider(WalletDataProvider):
    """Moralis Web3 Data API provider for wallet tokens and native transactions"""

    name = "moralis"

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        chains: Optional[Sequence[str]] = None,
        page_size: Optional[int] = None,
        max_transactions: Optional[int] = None,
        max_pages: Optional[int] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.moralis_api_key
        self.base_url = (base_url or settings.moralis_api_base).rstrip("/")
        self.chains = list(chains) if chains else settings.moralis_chain_list
        self.page_size = page_size or settings.moralis_page_size
        self.max_transactions = max_transactions or settings.moralis_max_transactions
        self.max_pages = max_pages or settings.pagination_max_pages
        self.timeout_s = settings.request_timeout_seconds

    def _require_api_key(self) -> str:
        if not self.api_key:
            raise ProviderConfigurationError(
                self.name, ["MORALIS_API_KEY"], message="MORALIS_API_KEY is not configured"
            )
        return self.api_key

    async def ready(self) -> bool:
        return bool(self.api_key)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "API key not configured"}
        return {"status": "configured", "chains": list(self.chains)}

    async def _get(self, path: str, chain: str, params: Dict[str, Any]) -> Any:
        api_key = self._require_api_key()
        query = {key: value for key, value in params.items() if value not in (None, "")}
        headers = {"Accept": "application/json", "X-API-Key": api_key}

        try:
            async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                response = await client.get(f"{self.base_url}{path}", params=query, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("moralis request failed chain=%s error=%s", chain, type(exc).__name__)
            raise ProviderRequestError(self.name, chain) from exc

        raise_for_status(response, self.name, chain)
        return response.json()

    async def _balances_for_chain(self, address: str, chain: str) -> List[RawBalance]:
        payload = await self._get(
            f"/wallets/{quote(address, safe='')}/tokens",
            chain,
            {"chain": chain, "include": "erc20Metadata,usd"},
        )
        items = payload.get("result") if isinstance(payload, dict) else payload
        if not isinstance(items, list):
            items = []
        logger.debug("moralis wallet tokens chain=%s count=%d", chain, len(items))
        return [to_raw_balance(item, chain) for item in items if isinstance(item, Mapping)]

    async def _transactions_for_chain(self, address: str, chain: str, since: datetime) -> List[RawTransaction]:
        collected = 0

        async def fetch_page(cursor: Optional[str]) -> Tuple[List[RawTransaction], Optional[str]]:
            nonlocal collected
            payload = await self._get(
                f"/{quote(address, safe='')}",
                chain,
                {
                    "chain": chain,
                    "limit": self.page_size,
                    "order": "DESC",
                    "from_date": isoformat_utc(since),
                    "cursor": cursor,
                    "include": "labels",
                },
            )
            payload = payload if isinstance(payload, dict) else {}
            items = payload.get("result")
            batch = [
                to_raw_transaction(item, chain)
                for item in (items if isinstance(items, list) else [])
                if isinstance(item, Mapping)
            ]
            room = self.max_transactions - collected
            batch = batch[:max(room, 0)]
            collected += len(batch)
            next_cursor = payload.get("cursor") if collected < self.max_transactions else None
            return batch, next_cursor

        return await paginate_cursor(fetch_page, max_pages=self.max_pages, label=f"moralis:{chain}")

    async def fetch_balances(self, address: str) -> List[RawBalance]:
        self._require_api_key()
        outcomes = await settle_all(self.chains, lambda chain: self._balances_for_chain(address, chain))
        return collect(outcomes, provider=self.name, address=address)

    async def fetch_transactions(
        self,
        address: str,
        lookback: timedelta,
        *,
        now: Optional[datetime] = None,
    ) -> List[RawTransaction]:
        self._require_api_key()
        reference = now or datetime.now(timezone.utc)
        if reference.tzinfo is None:
            reference = reference.replace(tzinfo=timezone.utc)
        since = reference - lookback
        outcomes = await settle_all(
            self.chains,
            lambda chain: self._transactions_for_chain(address, chain, since),
        )
        transactions = collect(outcomes, provider=self.name, address=address)
        return within_lookback(transactions, lookback, now=reference)


__all__ = ["MoralisProvider", "to_raw_balance", "to_raw_transaction"]
