"""Wallet transaction history: fetch within the lookback window, normalize, cap."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from ..cache import AnalysisCache, TTLCache
from ..config import settings
from ..providers.base import ProviderConfigurationError, WalletDataProvider
from ..providers.registry import get_history_provider
from ..types import HistoryMeta, WalletHistory
from .analyzer import configuration_error
from .transactions import normalize_transactions

logger = logging.getLogger(__name__)

history_cache: AnalysisCache = TTLCache(
    default_ttl=settings.cache_ttl_seconds,
    max_size=settings.max_cache_size,
)


def history_cache_key(address: str) -> str:
    return f"history:{address.lower()}"


async def get_wallet_history(
    address: str,
    *,
    provider: Optional[WalletDataProvider] = None,
    cache: Optional[AnalysisCache] = None,
    now: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> WalletHistory:
    store = cache if cache is not None else history_cache
    key = history_cache_key(address)
    cached = await store.get(key)
    if cached is not None:
        return cached.model_copy(update={"meta": cached.meta.model_copy(update={"cached": True})})

    provider = provider or get_history_provider()
    lookback = timedelta(days=settings.history_lookback_days)
    try:
        raws = await provider.fetch_transactions(address, lookback, now=now)
    except ProviderConfigurationError as exc:
        logger.error("History provider not configured provider=%s missing=%s", provider.name, ",".join(exc.missing))
        raise configuration_error(provider.name, exc) from exc

    history = normalize_transactions(raws, address, limit=limit)
    logger.info(
        "Loaded wallet history address=%s provider=%s raw=%d returned=%d",
        address,
        provider.name,
        len(raws),
        len(history),
    )

    result = WalletHistory(
        address=address,
        history=history,
        meta=HistoryMeta(source=provider.name, is_fallback=len(history) == 0),
    )
    await store.set(key, result)
    return result


__all__ = ["get_wallet_history", "history_cache", "history_cache_key"]
