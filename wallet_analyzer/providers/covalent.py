import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import quote

import httpx

from ..config import settings
from ..services.chains import canonicalize_chain
from ..services.units import isoformat_utc, to_number
from ..types import PortfolioPoint, RawBalance, RawTransaction
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

QUOTE_CURRENCY = "USD"
TRANSACTIONS_PAGE_SIZE = 200


def to_raw_balance(item: Mapping[str, Any], chain: str) -> RawBalance:
    native = item.get("native_token")
    return RawBalance(
        chain=chain,
        symbol=item.get("contract_ticker_symbol"),
        name=item.get("contract_name"),
        contract_address=None if native else item.get("contract_address"),
        token_type=item.get("type"),
        decimals_hints=(item.get("contract_decimals"),),
        raw_amount=item.get("balance"),
        value_usd=item.get("quote"),
        price_usd=item.get("quote_rate"),
        value_usd_24h_ago=item.get("quote_24h"),
        is_native=native if isinstance(native, bool) else None,
        is_scam=item.get("is_spam"),
        logo=item.get("logo_url"),
    )


def to_raw_transaction(item: Mapping[str, Any], chain: str) -> RawTransaction:
    successful = item.get("successful")
    if successful is None:
        status = None
    else:
        status = "success" if successful else "failed"
    return RawTransaction(
        hash=item.get("tx_hash"),
        block_hash=item.get("block_hash"),
        block_height=item.get("block_height"),
        timestamp=item.get("block_signed_at"),
        chain=chain,
        from_address=item.get("from_address"),
        to_address=item.get("to_address"),
        from_label=item.get("from_address_label"),
        to_label=item.get("to_address_label"),
        value_raw=item.get("value"),
        value_usd=item.get("value_quote"),
        fee_raw=item.get("fees_paid"),
        fee_usd=item.get("gas_quote"),
        status=status,
    )


def to_portfolio_points(items: Sequence[Any], chain: str) -> List[PortfolioPoint]:
    canonical = canonicalize_chain(chain)
    points: List[PortfolioPoint] = []
    for item in items:
        if not isinstance(item, Mapping):
            continue
        for holding in item.get("holdings") or []:
            if not isinstance(holding, Mapping) or not holding.get("timestamp"):
                continue
            close = holding.get("close") if isinstance(holding.get("close"), Mapping) else {}
            points.append(
                PortfolioPoint(
                    timestamp=str(holding["timestamp"]),
                    value=to_number(close.get("quote")) or 0.0,
                    chain=canonical,
                )
            )
    return points


class CovalentProvider(WalletDataProvider):
    """Covalent (GoldRush) provider for balances, transactions and portfolio history"""

    name = "covalent"

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        chains: Optional[Sequence[str]] = None,
        max_pages: Optional[int] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.covalent_api_key
        self.base_url = (base_url or settings.covalent_api_base).rstrip("/")
        self.chains = list(chains) if chains else settings.covalent_chain_list
        self.max_pages = max_pages or settings.pagination_max_pages
        self.timeout_s = settings.request_timeout_seconds

    def _require_api_key(self) -> str:
        if not self.api_key:
            raise ProviderConfigurationError(
                self.name, ["COVALENT_API_KEY"], message="COVALENT_API_KEY is not configured"
            )
        return self.api_key

    async def ready(self) -> bool:
        return bool(self.api_key)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "API key not configured"}
        return {"status": "configured", "chains": list(self.chains)}

    async def _get(self, url: str, chain: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        api_key = self._require_api_key()
        headers = {"Accept": "application/json", "Authorization": f"Bearer {api_key}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                response = await client.get(url, params=params or None, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("covalent request failed chain=%s error=%s", chain, type(exc).__name__)
            raise ProviderRequestError(self.name, chain) from exc

        raise_for_status(response, self.name, chain)
        payload = response.json()
        if not isinstance(payload, dict):
            return {}
        if payload.get("error"):
            raise ProviderRequestError(
                self.name,
                chain,
                payload.get("error_code") if isinstance(payload.get("error_code"), int) else None,
                message=payload.get("error_message") or "Unknown Covalent error",
            )
        data = payload.get("data")
        return data if isinstance(data, dict) else {}

    def _address_url(self, chain: str, address: str, resource: str) -> str:
        return f"{self.base_url}/{quote(chain, safe='')}/address/{quote(address, safe='')}/{resource}/"

    async def _balances_for_chain(self, address: str, chain: str) -> List[RawBalance]:
        data = await self._get(
            self._address_url(chain, address, "balances_v2"),
            chain,
            {"quote-currency": QUOTE_CURRENCY, "nft": "false", "no-nft-fetch": "true"},
        )
        items = data.get("items") or []
        return [to_raw_balance(item, chain) for item in items if isinstance(item, Mapping)]

    async def _transactions_for_chain(self, address: str, chain: str, since: datetime) -> List[RawTransaction]:
        first_url = self._address_url(chain, address, "transactions_v3")
        first_params = {
            "page-size": TRANSACTIONS_PAGE_SIZE,
            "no-logs": "true",
            "block-signed-at-gt": isoformat_utc(since),
            "quote-currency": QUOTE_CURRENCY,
        }

        async def fetch_page(cursor: Optional[str]) -> Tuple[List[RawTransaction], Optional[str]]:
            if cursor is None:
                data = await self._get(first_url, chain, first_params)
            else:
                data = await self._get(cursor, chain)
            items = data.get("items") or []
            links = data.get("links") if isinstance(data.get("links"), Mapping) else {}
            next_url = links.get("next")
            return (
                [to_raw_transaction(item, chain) for item in items if isinstance(item, Mapping)],
                next_url if isinstance(next_url, str) and next_url else None,
            )

        return await paginate_cursor(fetch_page, max_pages=self.max_pages, label=f"covalent:{chain}")

    async def _portfolio_for_chain(self, address: str, chain: str, days: int) -> List[PortfolioPoint]:
        data = await self._get(
            self._address_url(chain, address, "portfolio_v2"),
            chain,
            {"quote-currency": QUOTE_CURRENCY, "days": days, "time-bucket": "day", "page-size": days * 2},
        )
        return to_portfolio_points(data.get("items") or [], chain)

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

    async def fetch_portfolio_history(self, address: str, days: int = 30) -> List[PortfolioPoint]:
        """Daily closing portfolio value per configured chain."""

        self._require_api_key()
        outcomes = await settle_all(self.chains, lambda chain: self._portfolio_for_chain(address, chain, days))
        return collect(outcomes, provider=self.name, address=address)


__all__ = ["CovalentProvider", "to_portfolio_points", "to_raw_balance", "to_raw_transaction"]
