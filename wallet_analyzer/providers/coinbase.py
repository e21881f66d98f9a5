import base64
import binascii
import logging
import secrets
import string
import time
from datetime import datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import quote, urlsplit

import httpx
import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from ..config import settings
from ..services.chains import CHAIN_ALIASES
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

JWT_TTL_SECONDS = 60
NONCE_LENGTH = 16

# Canonical chain key -> CDP network id
_CDP_NETWORKS: Dict[str, str] = {
    "eth": "ethereum-mainnet",
    "base": "base-mainnet",
    "polygon": "polygon-mainnet",
    "arbitrum": "arbitrum-one",
    "optimism": "optimism-mainnet",
    "bsc": "bnb-mainnet",
    "avalanche": "avalanche-mainnet",
    "fantom": "fantom-mainnet",
    "zksync": "zksync",
    "linea": "linea-mainnet",
    "scroll": "scroll-mainnet",
    "metis": "metis-andromeda",
    "klaytn": "klaytn-mainnet",
    "celo": "celo-mainnet",
    "moonbeam": "moonbeam-mainnet",
    "moonriver": "moonriver-mainnet",
    "aurora": "aurora-mainnet",
    "cronos": "cronos-mainnet",
    "gnosis": "gnosis-mainnet",
    "harmony": "harmony-mainnet",
}
_TESTNETS = {"base-sepolia": "base-sepolia", "84532": "base-sepolia", "eip155:84532": "base-sepolia"}


def to_coinbase_network_id(entry: Optional[str]) -> Optional[str]:
    """Translate a chain alias, chain id or ``eip155:`` URI into a CDP network id."""

    if entry is None:
        return None
    text = str(entry).strip()
    if not text:
        return None
    lowered = text.lower()

    if lowered in _TESTNETS:
        return _TESTNETS[lowered]
    canonical = CHAIN_ALIASES.get(lowered)
    if canonical and canonical in _CDP_NETWORKS:
        return _CDP_NETWORKS[canonical]
    if lowered.startswith("eip155:") and lowered[7:].isdigit():
        return lowered[7:]
    return text


def _nonce() -> str:
    return "".join(secrets.choice(string.digits) for _ in range(NONCE_LENGTH))


def _is_pem(secret: str) -> bool:
    return "-----BEGIN" in secret and "PRIVATE KEY" in secret


def _load_signing_key(secret: str) -> Tuple[Any, str]:
    """Return ``(key, algorithm)`` for a PEM EC key or a base64 Ed25519 keypair."""

    if _is_pem(secret):
        pem = secret.strip().replace("\\n", "\n")
        try:
            key = serialization.load_pem_private_key(pem.encode("utf-8"), password=None)
        except (ValueError, TypeError) as exc:
            raise ProviderConfigurationError(
                "coinbase", message="Unable to parse Coinbase EC private key"
            ) from exc
        return key, "ES256"

    try:
        decoded = base64.b64decode(secret.strip(), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ProviderConfigurationError(
            "coinbase", message="Coinbase private key must be provided in PEM or base64 format"
        ) from exc
    if len(decoded) != 64:
        raise ProviderConfigurationError(
            "coinbase", message="Coinbase private key must be 64 bytes when base64 encoded"
        )
    return Ed25519PrivateKey.from_private_bytes(decoded[:32]), "EdDSA"


def build_jwt(
    api_key: str,
    api_secret: str,
    method: str,
    url: str,
    *,
    issued_at: Optional[int] = None,
) -> str:
    """Sign a short-lived CDP bearer token scoped to one ``METHOD host/path``."""

    key, algorithm = _load_signing_key(api_secret)
    parts = urlsplit(url)
    now = int(time.time()) if issued_at is None else issued_at
    claims = {
        "sub": api_key,
        "iss": "cdp",
        "aud": ["cdp_service"],
        "uris": [f"{method.upper()} {parts.netloc}{parts.path}"],
        "nbf": now,
        "iat": now,
        "exp": now + JWT_TTL_SECONDS,
    }
    headers = {"kid": api_key, "typ": "JWT", "nonce": _nonce()}
    try:
        return jwt.encode(claims, key, algorithm=algorithm, headers=headers)
    except (jwt.PyJWTError, ValueError, TypeError) as exc:
        raise ProviderConfigurationError(
            "coinbase", message=f"Unable to sign Coinbase JWT with {algorithm} key"
        ) from exc


def _mapping(value: Any) -> Optional[Mapping[str, Any]]:
    return value if isinstance(value, Mapping) else None


def to_raw_balance(resource: Mapping[str, Any], network_id: str) -> RawBalance:
    asset = _mapping(resource.get("asset")) or {}
    quantity = _mapping(resource.get("quantity")) or {}
    native_balance = _mapping(resource.get("native_balance")) or {}
    raw_amount = quantity.get("amount")
    if raw_amount is None:
        raw_amount = native_balance.get("amount")

    return RawBalance(
        chain=resource.get("network_id") or network_id,
        symbol=asset.get("symbol"),
        asset_id=asset.get("asset_id"),
        name=asset.get("name"),
        contract_address=asset.get("address"),
        token_type=asset.get("token_type"),
        decimals_hints=(asset.get("decimals"), quantity.get("decimals"), native_balance.get("decimals")),
        amount=resource.get("amount") if asset else None,
        amount_decimal=quantity.get("amount_decimal"),
        raw_amount=raw_amount,
        value_usd=resource.get("value_usd"),
        value_objects=tuple(
            source for source in (_mapping(resource.get("value")), _mapping(resource.get("native_value"))) if source
        ),
        change_24h=_mapping(resource.get("change_24h")),
        is_verified=asset.get("is_verified"),
        is_scam=asset.get("is_scam"),
        logo=asset.get("logo"),
    )


def to_raw_transaction(resource: Mapping[str, Any], network_id: str) -> RawTransaction:
    metadata = _mapping(resource.get("metadata")) or {}
    content = _mapping(resource.get("content")) or {}
    transfers = resource.get("token_transfers") or content.get("token_transfers") or ()

    return RawTransaction(
        hash=resource.get("hash"),
        alt_hash=resource.get("transaction_hash"),
        content_hash=content.get("hash"),
        metadata_hash=metadata.get("transaction_hash"),
        block_hash=resource.get("block_hash"),
        block_height=resource.get("block_height"),
        timestamp=resource.get("block_timestamp") or content.get("block_timestamp"),
        chain=resource.get("network_id") or network_id,
        from_party=_mapping(resource.get("from")),
        to_party=_mapping(resource.get("to")),
        content_from=content.get("from"),
        content_to=content.get("to"),
        token_transfers=tuple(item for item in transfers if isinstance(item, Mapping)),
        value_object=_mapping(resource.get("value")) or _mapping(resource.get("native_value")),
        fee_object=_mapping(resource.get("fee")),
        status=resource.get("status"),
    )


class CoinbaseProvider(WalletDataProvider):
    """Coinbase Developer Platform provider for balances and transactions"""

    name = "coinbase"

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        base_url: Optional[str] = None,
        networks: Optional[Sequence[str]] = None,
        max_pages: Optional[int] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.coinbase_api_key
        self.api_secret = api_secret if api_secret is not None else settings.coinbase_api_secret
        self.base_url = (base_url or settings.coinbase_api_base).rstrip("/")
        self.timeout_s = settings.request_timeout_seconds
        self.max_pages = max_pages or settings.pagination_max_pages
        self.networks = self._resolve_networks(networks if networks is not None else settings.coinbase_networks)

    @staticmethod
    def _resolve_networks(entries: Sequence[str]) -> List[str]:
        resolved: List[str] = []
        for entry in entries:
            network = to_coinbase_network_id(entry)
            if network and network not in resolved:
                resolved.append(network)
        return resolved or ["ethereum-mainnet"]

    def _require_credentials(self) -> None:
        missing = [
            env_name
            for env_name, value in (("COINBASE_API_KEY", self.api_key), ("COINBASE_API_SECRET", self.api_secret))
            if not value
        ]
        if missing:
            raise ProviderConfigurationError(
                self.name,
                missing,
                message="COINBASE_API_KEY and COINBASE_API_SECRET must be configured",
            )

    async def ready(self) -> bool:
        return bool(self.api_key and self.api_secret)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "API credentials not configured"}
        try:
            build_jwt(self.api_key, self.api_secret, "GET", f"{self.base_url}/v1/networks")
        except ProviderConfigurationError as exc:
            return {"status": "error", "reason": str(exc)}
        return {"status": "configured", "networks": list(self.networks)}

    async def _get(self, path: str, network_id: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        self._require_credentials()
        url = f"{self.base_url}{path}"
        token = build_jwt(self.api_key, self.api_secret, "GET", url)
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
        }
        query = {key: value for key, value in (params or {}).items() if value not in (None, "")}

        try:
            async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                response = await client.get(url, params=query, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("coinbase request failed network=%s error=%s", network_id, type(exc).__name__)
            raise ProviderRequestError(self.name, network_id) from exc

        raise_for_status(response, self.name, network_id)
        payload = response.json()
        return payload if isinstance(payload, dict) else {}

    @staticmethod
    def _address_path(network_id: str, address: str, resource: str) -> str:
        return f"/v1/networks/{quote(network_id, safe='')}/addresses/{quote(address, safe='')}/{resource}"

    async def _balances_for_network(self, address: str, network_id: str) -> List[RawBalance]:
        payload = await self._get(self._address_path(network_id, address, "balances"), network_id)
        data = payload.get("data")
        items = data if isinstance(data, list) else []
        return [to_raw_balance(item, network_id) for item in items if isinstance(item, Mapping)]

    async def _transactions_for_network(self, address: str, network_id: str) -> List[RawTransaction]:
        path = self._address_path(network_id, address, "transactions")

        async def fetch_page(cursor: Optional[str]) -> Tuple[List[RawTransaction], Optional[str]]:
            payload = await self._get(path, network_id, {"cursor": cursor})
            data = payload.get("data")
            items = data if isinstance(data, list) else []
            pagination = _mapping(payload.get("pagination")) or {}
            next_cursor = pagination.get("next_cursor") or pagination.get("cursor")
            if next_cursor == cursor:
                next_cursor = None
            return [to_raw_transaction(item, network_id) for item in items if isinstance(item, Mapping)], next_cursor

        return await paginate_cursor(fetch_page, max_pages=self.max_pages, label=f"coinbase:{network_id}")

    async def fetch_balances(self, address: str) -> List[RawBalance]:
        self._require_credentials()
        outcomes = await settle_all(self.networks, lambda network: self._balances_for_network(address, network))
        return collect(outcomes, provider=self.name, address=address)

    async def fetch_transactions(
        self,
        address: str,
        lookback: timedelta,
        *,
        now: Optional[datetime] = None,
    ) -> List[RawTransaction]:
        self._require_credentials()
        outcomes = await settle_all(self.networks, lambda network: self._transactions_for_network(address, network))
        transactions = collect(outcomes, provider=self.name, address=address)
        return within_lookback(transactions, lookback, now=now)


__all__ = [
    "CoinbaseProvider",
    "build_jwt",
    "to_coinbase_network_id",
    "to_raw_balance",
    "to_raw_transaction",
]
