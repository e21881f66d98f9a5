from typing import Callable, Dict, Optional

from ..config import settings
from .base import ProviderConfigurationError, WalletDataProvider
from .coinbase import CoinbaseProvider
from .coingecko import CoingeckoPriceOracle
from .covalent import CovalentProvider
from .moralis import MoralisProvider

PROVIDER_FACTORIES: Dict[str, Callable[[], WalletDataProvider]] = {
    "coinbase": CoinbaseProvider,
    "moralis": MoralisProvider,
    "covalent": CovalentProvider,
}


def build_provider(name: str) -> WalletDataProvider:
    factory = PROVIDER_FACTORIES.get(name.strip().lower())
    if factory is None:
        raise ProviderConfigurationError(
            name,
            message=f"Unknown data provider '{name}'; expected one of {', '.join(sorted(PROVIDER_FACTORIES))}",
        )
    return factory()


def get_balance_provider() -> WalletDataProvider:
    return build_provider(settings.balance_provider)


def get_history_provider() -> WalletDataProvider:
    return build_provider(settings.history_provider)


_price_oracle: Optional[CoingeckoPriceOracle] = None


def get_price_oracle() -> CoingeckoPriceOracle:
    global _price_oracle
    if _price_oracle is None:
        _price_oracle = CoingeckoPriceOracle()
    return _price_oracle


__all__ = [
    "PROVIDER_FACTORIES",
    "build_provider",
    "get_balance_provider",
    "get_history_provider",
    "get_price_oracle",
]
