"""Turn provider-neutral raw balances into canonical holdings."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from decimal import Decimal
from typing import Callable, Iterable, List, Optional, Tuple

from ..types import Holding, RawBalance
from .chains import DEFAULT_DECIMALS, canonicalize_chain, native_decimals
from .units import (
    first_decimals,
    is_raw_integer,
    scale_raw_amount,
    to_decimal,
    to_number,
    usd_from_value,
)

logger = logging.getLogger(__name__)

VALUE_EPSILON = 0.0001
MAX_UNVERIFIED_TOKEN_VALUE = 10_000
MAX_UNIT_PRICE_FOR_UNVERIFIED = 5_000

# (chain key, lower-cased contract address or None for the native asset) -> USD price
PriceLookup = Callable[[str, Optional[str]], Optional[float]]


def _normalize_symbol(value: Optional[str]) -> Optional[str]:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed.upper() if trimmed else None


def _contract_address(raw: RawBalance) -> Optional[str]:
    address = raw.contract_address
    if isinstance(address, str) and address.strip():
        return address.strip().lower()
    return None


def is_native_asset(raw: RawBalance) -> bool:
    if raw.is_native is not None:
        return bool(raw.is_native)
    if isinstance(raw.token_type, str) and raw.token_type.lower() == "native":
        return True
    return _contract_address(raw) is None


def resolve_decimals(raw: RawBalance, chain: str) -> int:
    explicit = first_decimals(raw.decimals_hints)
    if explicit is not None:
        return explicit
    if is_native_asset(raw):
        return native_decimals(chain)
    return DEFAULT_DECIMALS


def resolve_amount(raw: RawBalance, decimals: int) -> Optional[Decimal]:
    """Decimal-adjusted quantity, or ``None`` when nothing usable was reported.

    Precedence: the reported amount (digit-only strings are base units), then a
    pre-divided quantity, then raw base units scaled by ``decimals``.
    """

    direct = raw.amount
    if direct is not None and not isinstance(direct, bool):
        if isinstance(direct, str) and is_raw_integer(direct):
            amount = scale_raw_amount(direct, decimals)
        else:
            amount = to_decimal(direct)
        if amount is not None:
            return abs(amount)

    pre_divided = to_decimal(raw.amount_decimal)
    if pre_divided is not None:
        return abs(pre_divided)

    if raw.raw_amount is not None:
        amount = scale_raw_amount(raw.raw_amount, decimals)
        if amount is not None:
            return abs(amount)

    return None


def reported_value_usd(raw: RawBalance) -> Optional[float]:
    direct = to_number(raw.value_usd)
    if direct is not None:
        return abs(direct)
    for source in raw.value_objects:
        usd = usd_from_value(source)
        if usd is not None:
            return abs(usd)
    return None


def derive_value_24h_ago(raw: RawBalance, current_value: float) -> Optional[float]:
    """Prior-day USD value; non-positive values are treated as unknown."""

    prior = to_number(raw.value_usd_24h_ago)
    if prior is not None:
        return prior if prior > 0 else None

    change = raw.change_24h
    if change is None:
        return None
    change_usd = usd_from_value(change) if isinstance(change, Mapping) else to_number(change)
    if change_usd is None:
        return None

    prior = current_value - change_usd
    return prior if prior > 0 else None


def price_key(raw: RawBalance, chain_hint: Optional[str] = None) -> Tuple[str, Optional[str]]:
    """Price oracle key built from the balance's own chain."""

    chain = canonicalize_chain(raw.chain or chain_hint)
    return chain, None if is_native_asset(raw) else _contract_address(raw)


def normalize_balance(
    raw: RawBalance,
    chain_hint: Optional[str] = None,
    price_lookup: Optional[PriceLookup] = None,
) -> Optional[Holding]:
    """Build a canonical holding, or ``None`` when the balance should be hidden."""

    chain = canonicalize_chain(raw.chain or chain_hint)
    symbol = _normalize_symbol(raw.symbol) or _normalize_symbol(raw.asset_id) or chain.upper()
    contract = _contract_address(raw)
    native = is_native_asset(raw)

    decimals = resolve_decimals(raw, chain)
    amount_dec = resolve_amount(raw, decimals)
    amount = float(amount_dec) if amount_dec is not None else 0.0
    has_meaningful_amount = amount > VALUE_EPSILON

    value_usd = reported_value_usd(raw)
    if value_usd is None and has_meaningful_amount:
        unit_price = to_number(raw.price_usd)
        if unit_price is None and price_lookup is not None:
            unit_price = price_lookup(chain, None if native else contract)
        if unit_price is not None:
            value_usd = abs(unit_price) * amount
    if value_usd is None:
        value_usd = 0.0

    if not has_meaningful_amount and value_usd < VALUE_EPSILON:
        return None

    if raw.is_scam:
        logger.warning("Dropping asset flagged as scam chain=%s symbol=%s value_usd=%.2f", chain, symbol, value_usd)
        return None

    is_verified = True if raw.is_verified is None else bool(raw.is_verified)
    unit_price = value_usd / amount if has_meaningful_amount else None

    if (
        not native
        and not is_verified
        and (
            value_usd > MAX_UNVERIFIED_TOKEN_VALUE
            or (unit_price is not None and unit_price > MAX_UNIT_PRICE_FOR_UNVERIFIED)
        )
    ):
        logger.warning(
            "Dropping unverified high value token chain=%s symbol=%s value_usd=%.2f unit_price=%s",
            chain,
            symbol,
            value_usd,
            unit_price,
        )
        return None

    value_24h_ago = derive_value_24h_ago(raw, value_usd)
    change_24h = (
        (value_usd - value_24h_ago) / value_24h_ago * 100
        if value_24h_ago is not None and value_24h_ago > VALUE_EPSILON
        else 0.0
    )

    return Holding(
        chain=chain,
        symbol=symbol,
        name=raw.name,
        contract_address=None if native else contract,
        amount=amount,
        decimals=decimals,
        value_usd=value_usd,
        value_usd_24h_ago=value_24h_ago,
        change_24h=change_24h,
        is_native=native,
        is_verified=is_verified,
    )


def finalize_holdings(holdings: Iterable[Holding]) -> List[Holding]:
    """Sort by USD value and assign allocation percentages.

    Returns new instances; the inputs are left untouched.
    """

    ordered = sorted(holdings, key=lambda holding: holding.value_usd, reverse=True)
    total = sum(holding.value_usd for holding in ordered)
    if total <= VALUE_EPSILON:
        return [holding.model_copy(update={"allocation_pct": 0.0}) for holding in ordered]
    return [
        holding.model_copy(update={"allocation_pct": holding.value_usd / total * 100})
        for holding in ordered
    ]


def normalize_balances(
    raws: Iterable[RawBalance],
    price_lookup: Optional[PriceLookup] = None,
) -> List[Holding]:
    holdings = []
    for raw in raws:
        holding = normalize_balance(raw, price_lookup=price_lookup)
        if holding is not None:
            holdings.append(holding)
    return finalize_holdings(holdings)


__all__ = [
    "MAX_UNIT_PRICE_FOR_UNVERIFIED",
    "MAX_UNVERIFIED_TOKEN_VALUE",
    "PriceLookup",
    "VALUE_EPSILON",
    "derive_value_24h_ago",
    "finalize_holdings",
    "is_native_asset",
    "normalize_balance",
    "normalize_balances",
    "price_key",
    "reported_value_usd",
    "resolve_amount",
    "resolve_decimals",
]
