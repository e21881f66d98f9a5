import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

from ..services.units import parse_timestamp
from ..types import RawBalance, RawTransaction

logger = logging.getLogger(__name__)


class ProviderError(RuntimeError):
    """Base class for upstream data provider failures"""


class ProviderConfigurationError(ProviderError):
    """Raised when a provider is missing credentials or settings"""

    def __init__(self, provider: str, missing: Iterable[str] = (), message: Optional[str] = None):
        self.provider = provider
        self.missing = tuple(missing)
        if message is None:
            names = ", ".join(self.missing) or "credentials"
            message = f"{provider} is not configured: missing {names}"
        super().__init__(message)


class ProviderRequestError(ProviderError):
    """Raised when a provider responds with an error for one chain"""

    def __init__(
        self,
        provider: str,
        chain: Optional[str],
        status_code: Optional[int] = None,
        message: Optional[str] = None,
    ):
        self.provider = provider
        self.chain = chain
        self.status_code = status_code
        if message is None:
            status = f"status {status_code}" if status_code is not None else "request failed"
            message = f"{provider} {status} for chain {chain or 'unknown'}"
        super().__init__(message)


class WalletDataProvider(ABC):
    """Provider for wallet balances and transaction history"""

    name: str
    timeout_s: int = 30

    @abstractmethod
    async def ready(self) -> bool:
        """Check if provider is ready to serve requests"""

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Return provider health status"""

    @abstractmethod
    async def fetch_balances(self, address: str) -> List[RawBalance]:
        """Fetch balances for every configured chain"""

    @abstractmethod
    async def fetch_transactions(
        self,
        address: str,
        lookback: timedelta,
        *,
        now: Optional[datetime] = None,
    ) -> List[RawTransaction]:
        """Fetch transactions newer than ``now - lookback`` for every configured chain"""


def within_lookback(
    transactions: Iterable[RawTransaction],
    lookback: timedelta,
    *,
    now: Optional[datetime] = None,
) -> List[RawTransaction]:
    """Drop transactions older than the window; unparseable timestamps are kept."""

    reference = now or datetime.now(timezone.utc)
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=timezone.utc)
    cutoff = reference - lookback

    kept: List[RawTransaction] = []
    for tx in transactions:
        moment = parse_timestamp(tx.timestamp)
        if moment is not None and moment < cutoff:
            continue
        kept.append(tx)
    return kept


def raise_for_status(response: Any, provider: str, chain: Optional[str]) -> None:
    """Translate a non-2xx httpx response into ``ProviderRequestError``.

    URLs are not logged; query strings may carry API keys.
    """

    status = response.status_code
    if 200 <= status < 300:
        return
    logger.warning("%s returned status=%s chain=%s", provider, status, chain)
    raise ProviderRequestError(provider, chain, status)


__all__ = [
    "ProviderConfigurationError",
    "ProviderError",
    "ProviderRequestError",
    "WalletDataProvider",
    "raise_for_status",
    "within_lookback",
]
