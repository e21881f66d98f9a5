"""
Provider-neutral raw records.

Each provider adapter translates its own response schema into these shapes so the
normalizers never need to know which upstream produced a record. Every field is
optional and carries the value exactly as reported; interpretation (units, decimals,
precedence) belongs to the normalizers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple


@dataclass(frozen=True, slots=True)
class RawBalance:
    chain: Optional[str] = None
    symbol: Optional[str] = None
    asset_id: Optional[str] = None
    name: Optional[str] = None
    contract_address: Optional[str] = None
    token_type: Optional[str] = None
    # Candidate decimals in precedence order; the first usable one wins.
    decimals_hints: Tuple[Any, ...] = ()
    amount: Any = None
    amount_decimal: Any = None
    raw_amount: Any = None
    value_usd: Any = None
    value_objects: Tuple[Mapping[str, Any], ...] = ()
    price_usd: Any = None
    value_usd_24h_ago: Any = None
    change_24h: Any = None
    is_native: Optional[bool] = None
    is_verified: Optional[bool] = None
    is_scam: Optional[bool] = None
    logo: Optional[str] = None


@dataclass(frozen=True, slots=True)
class RawTransaction:
    hash: Optional[str] = None
    alt_hash: Optional[str] = None
    content_hash: Optional[str] = None
    metadata_hash: Optional[str] = None
    block_hash: Optional[str] = None
    block_height: Any = None
    timestamp: Any = None
    chain: Optional[str] = None
    from_party: Optional[Mapping[str, Any]] = None
    to_party: Optional[Mapping[str, Any]] = None
    from_address: Optional[str] = None
    to_address: Optional[str] = None
    from_label: Optional[str] = None
    to_label: Optional[str] = None
    content_from: Optional[str] = None
    content_to: Optional[str] = None
    token_transfers: Tuple[Mapping[str, Any], ...] = field(default_factory=tuple)
    value_object: Optional[Mapping[str, Any]] = None
    value_raw: Any = None
    value_usd: Any = None
    decimals: Any = None
    fee_object: Optional[Mapping[str, Any]] = None
    fee_raw: Any = None
    fee_usd: Any = None
    symbol: Optional[str] = None
    status: Optional[str] = None


__all__ = ["RawBalance", "RawTransaction"]
