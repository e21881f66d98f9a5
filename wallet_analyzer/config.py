from pathlib import Path
from typing import Any, List

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


def split_csv(value: Any) -> List[str]:
    """Split a comma-separated setting into trimmed, non-empty entries."""

    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    else:
        items = list(value)
    return [str(item).strip() for item in items if str(item).strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")

    # Coinbase Developer Platform (balances)
    coinbase_api_key: str = Field(default="", description="Coinbase CDP API key name")
    coinbase_api_secret: str = Field(
        default="",
        description="Coinbase CDP private key (PEM EC key or base64 Ed25519 key)",
    )
    coinbase_api_base: str = Field(
        default="https://api.cdp.coinbase.com/platform",
        description="Coinbase CDP platform API base URL",
    )
    coinbase_network_ids: str = Field(
        default="ethereum-mainnet",
        validation_alias=AliasChoices("coinbase_network_ids", "coinbase_networks"),
        description="Comma-separated networks queried on Coinbase (aliases, chain ids or eip155 URIs)",
    )

    # Moralis (transaction history)
    moralis_api_key: str = Field(default="", description="Moralis API key")
    moralis_api_base: str = Field(
        default="https://deep-index.moralis.io/api/v2.2",
        description="Moralis API base URL",
    )
    moralis_chains: str = Field(
        default="eth,arbitrum,optimism",
        description="Comma-separated chains queried on Moralis",
    )
    moralis_page_size: int = Field(default=100, ge=1, le=100, description="Moralis page size")
    moralis_max_transactions: int = Field(
        default=200,
        ge=1,
        description="Per-chain transaction cap when paging Moralis history",
    )

    # Covalent
    covalent_api_key: str = Field(default="", description="Covalent API key")
    covalent_api_base: str = Field(
        default="https://api.covalenthq.com/v1",
        description="Covalent API base URL",
    )
    covalent_chain_ids: str = Field(
        default="eth-mainnet",
        description="Comma-separated chains queried on Covalent",
    )

    # Pricing
    coingecko_api_key: str = Field(default="", description="Coingecko API key")
    coingecko_base_url: str = Field(
        default="https://api.coingecko.com/api/v3",
        description="Coingecko API base URL",
    )
    enable_coingecko: bool = Field(default=True, description="Enable Coingecko price oracle")

    # Address resolution
    ens_resolver_url: str = Field(
        default="https://api.ensideas.com/ens/resolve",
        description="HTTP resolver used for .eth names",
    )

    # Provider selection
    balance_provider: str = Field(default="coinbase", description="Provider used for balances")
    history_provider: str = Field(default="moralis", description="Provider used for transaction history")

    # Cache Settings
    cache_ttl_seconds: int = Field(default=3600, description="Cache TTL in seconds")
    max_cache_size: int = Field(default=1000, description="Maximum cache size")

    # Rate Limiting
    request_timeout_seconds: int = Field(default=30, description="Request timeout")
    rate_limit_max_requests: int = Field(default=60, ge=1, description="Requests allowed per window")
    rate_limit_window_seconds: int = Field(default=60, ge=1, description="Rate limit window")

    # History
    history_lookback_days: int = Field(
        default=183,
        ge=1,
        description="Transactions older than this many days are dropped",
    )
    history_max_records: int = Field(
        default=200,
        ge=1,
        description="Maximum number of transactions returned to clients",
    )
    pagination_max_pages: int = Field(
        default=25,
        ge=1,
        description="Safety ceiling on pages followed per chain",
    )

    @property
    def coinbase_networks(self) -> List[str]:
        return split_csv(self.coinbase_network_ids) or ["ethereum-mainnet"]

    @property
    def moralis_chain_list(self) -> List[str]:
        return split_csv(self.moralis_chains) or ["eth"]

    @property
    def covalent_chain_list(self) -> List[str]:
        return split_csv(self.covalent_chain_ids) or ["eth-mainnet"]

    @property
    def has_coinbase_credentials(self) -> bool:
        return bool(self.coinbase_api_key and self.coinbase_api_secret)

    @property
    def has_moralis_key(self) -> bool:
        return bool(self.moralis_api_key)

    @property
    def has_covalent_key(self) -> bool:
        return bool(self.covalent_api_key)

    @property
    def has_coingecko_key(self) -> bool:
        return bool(self.coingecko_api_key)


# Global settings instance
settings = Settings()
