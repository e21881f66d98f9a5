"""Helpers for validating wallet addresses and resolving ENS names."""

from __future__ import annotations

import logging
import re
from typing import Optional
from urllib.parse import quote

import httpx

from ..config import settings

logger = logging.getLogger(__name__)

_EVM_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
ENS_SUFFIX = ".eth"


class AddressResolutionError(ValueError):
    """Raised when user input cannot be turned into a wallet address."""


def is_hex_address(value: str) -> bool:
    return bool(value) and bool(_EVM_ADDRESS_RE.fullmatch(value))


async def resolve_ens_name(name: str) -> Optional[str]:
    """Look up an ENS name; ``None`` when the resolver has no usable answer."""

    url = f"{settings.ens_resolver_url.rstrip('/')}/{quote(name, safe='')}"
    try:
        async with httpx.AsyncClient(timeout=settings.request_timeout_seconds) as client:
            response = await client.get(url, headers={"Accept": "application/json"})
            if response.status_code != 200:
                return None
            payload = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Failed to resolve ENS name %s: %s", name, exc)
        return None

    candidate = (payload or {}).get("address") if isinstance(payload, dict) else None
    if isinstance(candidate, str):
        candidate = candidate.strip()
        if is_hex_address(candidate):
            return candidate.lower()
    return None


async def resolve_address(value: str | None) -> str:
    """Return the lower-cased 0x address for raw hex input or an ENS name."""

    candidate = (value or "").strip()
    if not candidate:
        raise AddressResolutionError("Wallet is required")

    if is_hex_address(candidate):
        return candidate.lower()

    if candidate.lower().endswith(ENS_SUFFIX):
        resolved = await resolve_ens_name(candidate)
        if resolved:
            return resolved
        raise AddressResolutionError("Unable to resolve ENS name to a wallet address")

    raise AddressResolutionError("Address must be a 0x-prefixed hex string or ENS name")


__all__ = [
    "AddressResolutionError",
    "ENS_SUFFIX",
    "is_hex_address",
    "resolve_address",
    "resolve_ens_name",
]
