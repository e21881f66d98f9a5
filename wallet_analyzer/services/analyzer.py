"""Wallet analysis pipeline: fetch balances, price them, normalize, analyze."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from ..cache import AnalysisCache, TTLCache
from ..config import settings
from ..providers.base import ProviderConfigurationError, WalletDataProvider
from ..providers.coingecko import CoingeckoPriceOracle, PriceTable
from ..providers.registry import get_balance_provider, get_price_oracle
from ..types import WalletAnalysis
from .balances import normalize_balances, price_key, reported_value_usd
from .portfolio import analyze_holdings
from .units import to_number

logger = logging.getLogger(__name__)

CONFIGURATION_MESSAGES: Dict[str, str] = {
    "coinbase": "Coinbase API credentials are missing or invalid",
    "moralis": "Moralis API key is missing or invalid",
    "covalent": "Covalent API key is missing or invalid",
}

analysis_cache: AnalysisCache = TTLCache(
    default_ttl=settings.cache_ttl_seconds,
    max_size=settings.max_cache_size,
)


def analysis_cache_key(address: str) -> str:
    return f"analysis:{address.lower()}"


def configuration_error(provider: str, exc: ProviderConfigurationError) -> ProviderConfigurationError:
    """Rewrap a provider configuration failure with a message fit for API clients."""

    message = CONFIGURATION_MESSAGES.get(provider)
    if message is None:
        return exc
    return ProviderConfigurationError(provider, exc.missing, message=message)


async def analyze_wallet(
    address: str,
    *,
    provider: Optional[WalletDataProvider] = None,
    price_oracle: Optional[CoingeckoPriceOracle] = None,
    cache: Optional[AnalysisCache] = None,
) -> WalletAnalysis:
    """Analyze a resolved wallet address, serving from cache when fresh."""

    store = cache if cache is not None else analysis_cache
    key = analysis_cache_key(address)
    cached = await store.get(key)
    if cached is not None:
        return cached.model_copy(update={"meta": cached.meta.model_copy(update={"cached": True})})

    provider = provider or get_balance_provider()
    try:
        raws = await provider.fetch_balances(address)
    except ProviderConfigurationError as exc:
        logger.error("Balance provider not configured provider=%s missing=%s", provider.name, ",".join(exc.missing))
        raise configuration_error(provider.name, exc) from exc

    unpriced = {
        price_key(raw)
        for raw in raws
        if reported_value_usd(raw) is None and to_number(raw.price_usd) is None
    }
    prices = PriceTable()
    if unpriced:
        oracle = price_oracle or get_price_oracle()
        prices = await oracle.fetch_prices(unpriced)

    holdings = normalize_balances(raws, price_lookup=prices.price_for)
    analysis = analyze_holdings(holdings, source=provider.name, address=address)
    logger.info(
        "Analyzed wallet address=%s provider=%s raw=%d holdings=%d net_worth=%.2f",
        address,
        provider.name,
        len(raws),
        len(holdings),
        analysis.summary.net_worth,
    )

    await store.set(key, analysis)
    return analysis


__all__ = ["CONFIGURATION_MESSAGES", "analysis_cache", "analysis_cache_key", "analyze_wallet"]
