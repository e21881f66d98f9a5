"""Normalize provider-neutral transactions into wallet history entries."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, List, Optional, Tuple

from ..config import settings
from ..types import Direction, RawTransaction, WalletTransaction
from .chains import canonicalize_chain, explorer_tx_url, native_decimals, native_symbol
from .units import (
    first_decimals,
    isoformat_utc,
    is_raw_integer,
    parse_timestamp,
    scale_raw_amount,
    to_decimal,
    to_number,
    usd_from_value,
)

logger = logging.getLogger(__name__)

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def _clean(value: Any) -> Optional[str]:
    if isinstance(value, str):
        trimmed = value.strip()
        return trimmed or None
    return None


def _party_field(party: Optional[Mapping[str, Any]], key: str) -> Optional[str]:
    if isinstance(party, Mapping):
        return _clean(party.get(key))
    return None


def _transfer_side(transfer: Mapping[str, Any], side: str) -> Optional[str]:
    return _clean(transfer.get(side)) or _clean(transfer.get(f"{side}_address"))


def resolve_hash(raw: RawTransaction, chain: str) -> Optional[str]:
    """Best available identifier, or ``None`` when nothing is recoverable."""

    for candidate in (raw.hash, raw.alt_hash, raw.content_hash, raw.metadata_hash):
        cleaned = _clean(candidate)
        if cleaned:
            return cleaned

    block_hash = _clean(raw.block_hash)
    block_height = raw.block_height if raw.block_height not in (None, "") else None
    if block_hash is None and block_height is None:
        return None
    return f"{chain}-{block_hash or ''}-{block_height if block_height is not None else ''}"


def _pick_transfer(raw: RawTransaction, address: str) -> Optional[Mapping[str, Any]]:
    transfers = [item for item in raw.token_transfers if isinstance(item, Mapping)]
    if not transfers:
        return None
    for transfer in transfers:
        sender = (_transfer_side(transfer, "from") or "").lower()
        recipient = (_transfer_side(transfer, "to") or "").lower()
        if address in (sender, recipient):
            return transfer
    return transfers[0]


def resolve_parties(raw: RawTransaction, address: str) -> Tuple[Optional[str], Optional[str]]:
    transfer = _pick_transfer(raw, address)
    sender = (
        _party_field(raw.from_party, "address")
        or _clean(raw.from_address)
        or _clean(raw.content_from)
        or (_transfer_side(transfer, "from") if transfer else None)
    )
    recipient = (
        _party_field(raw.to_party, "address")
        or _clean(raw.to_address)
        or _clean(raw.content_to)
        or (_transfer_side(transfer, "to") if transfer else None)
    )
    return sender, recipient


def classify_direction(sender: Optional[str], recipient: Optional[str], address: str) -> Direction:
    if recipient and recipient.lower() == address:
        return "in"
    if sender and sender.lower() == address:
        return "out"
    return "internal"


def resolve_counterparty(
    raw: RawTransaction,
    direction: Direction,
    sender: Optional[str],
    recipient: Optional[str],
    address: str,
) -> Optional[str]:
    if direction == "in":
        sides = ("from",)
    elif direction == "out":
        sides = ("to",)
    else:
        sides = ("from", "to")

    for transfer in raw.token_transfers:
        if not isinstance(transfer, Mapping):
            continue
        for side in sides:
            candidate = _transfer_side(transfer, side)
            if candidate and candidate.lower() != address:
                return candidate

    if direction == "in":
        return _party_field(raw.from_party, "label") or _clean(raw.from_label) or sender
    if direction == "out":
        return _party_field(raw.to_party, "label") or _clean(raw.to_label) or recipient
    for label, party_address in (
        (_party_field(raw.to_party, "label") or _clean(raw.to_label), recipient),
        (_party_field(raw.from_party, "label") or _clean(raw.from_label), sender),
    ):
        if label:
            return label
        if party_address and party_address.lower() != address:
            return party_address
    return None


def _decimals_hint(raw: RawTransaction, chain: str) -> int:
    explicit = first_decimals((raw.decimals,))
    if explicit is not None:
        return explicit
    return native_decimals(chain)


def resolve_amount(raw: RawTransaction, chain: str) -> Optional[float]:
    value = raw.value_object
    if isinstance(value, Mapping):
        pre_divided = to_decimal(value.get("amount_decimal") or value.get("decimal_amount"))
        if pre_divided is not None:
            return float(abs(pre_divided))
        symbol = _clean(value.get("symbol"))
        amount = value.get("amount")
        if amount is not None and not (symbol and symbol.upper() == "USD"):
            if is_raw_integer(amount):
                object_decimals = first_decimals((value.get("decimals"),))
                if object_decimals is None:
                    object_decimals = _decimals_hint(raw, chain)
                scaled = scale_raw_amount(amount, object_decimals)
            elif isinstance(amount, str) and "." in amount:
                scaled = to_decimal(amount)
            elif isinstance(amount, (int, float)) and not is_raw_integer(amount):
                scaled = to_decimal(amount)
            else:
                scaled = None
            if scaled is not None:
                return float(abs(scaled))

    if raw.value_raw is not None:
        scaled = scale_raw_amount(raw.value_raw, _decimals_hint(raw, chain))
        if scaled is not None:
            return float(abs(scaled))
    return None


def resolve_value_usd(raw: RawTransaction) -> Optional[float]:
    usd = usd_from_value(raw.value_object)
    if usd is None:
        usd = to_number(raw.value_usd)
    return abs(usd) if usd is not None else None


def resolve_fee_usd(raw: RawTransaction) -> Optional[float]:
    fee = raw.fee_object
    usd = usd_from_value(fee)
    if usd is None and isinstance(fee, Mapping) and isinstance(fee.get("amount"), Mapping):
        usd = usd_from_value(fee["amount"])
    if usd is None:
        usd = to_number(raw.fee_usd)
    return abs(usd) if usd is not None else None


def resolve_fee_native(raw: RawTransaction, chain: str) -> Optional[float]:
    if raw.fee_raw is None:
        return None
    scaled: Optional[Decimal] = scale_raw_amount(raw.fee_raw, native_decimals(chain))
    return float(abs(scaled)) if scaled is not None else None


def resolve_symbol(raw: RawTransaction, chain: str) -> Optional[str]:
    value = raw.value_object
    if isinstance(value, Mapping):
        symbol = _clean(value.get("symbol"))
        if symbol and symbol.upper() != "USD":
            return symbol.upper()
    symbol = _clean(raw.symbol)
    if symbol:
        return symbol.upper()
    return native_symbol(chain)


def normalize_transaction(
    raw: RawTransaction,
    address: str,
    chain_hint: Optional[str] = None,
) -> Optional[WalletTransaction]:
    """Build a wallet history entry, or ``None`` when no identifier can be recovered."""

    chain = canonicalize_chain(raw.chain or chain_hint)
    tx_hash = resolve_hash(raw, chain)
    if tx_hash is None:
        logger.debug("Skipping transaction without identifier chain=%s", chain)
        return None

    normalized_address = address.strip().lower()
    sender, recipient = resolve_parties(raw, normalized_address)
    direction = classify_direction(sender, recipient, normalized_address)

    moment = parse_timestamp(raw.timestamp)
    if moment is not None:
        timestamp = isoformat_utc(moment)
    else:
        timestamp = _clean(raw.timestamp) if isinstance(raw.timestamp, str) else None

    return WalletTransaction(
        hash=tx_hash,
        timestamp=timestamp,
        direction=direction,
        value_usd=resolve_value_usd(raw),
        amount=resolve_amount(raw, chain),
        gas_fee_usd=resolve_fee_usd(raw),
        gas_fee=resolve_fee_native(raw, chain),
        symbol=resolve_symbol(raw, chain),
        counterparty=resolve_counterparty(raw, direction, sender, recipient, normalized_address),
        chain=chain,
        explorer_url=explorer_tx_url(chain, tx_hash),
    )


def _sort_key(transaction: WalletTransaction) -> datetime:
    return parse_timestamp(transaction.timestamp) or _OLDEST


def normalize_transactions(
    raws: Iterable[RawTransaction],
    address: str,
    *,
    limit: Optional[int] = None,
) -> List[WalletTransaction]:
    """Normalize, dedupe on ``(chain, hash)``, order newest first and cap."""

    cap = settings.history_max_records if limit is None else limit

    seen: set[Tuple[str, str]] = set()
    results: List[WalletTransaction] = []
    for raw in raws:
        transaction = normalize_transaction(raw, address)
        if transaction is None:
            continue
        key = (transaction.chain, transaction.hash)
        if key in seen:
            continue
        seen.add(key)
        results.append(transaction)

    # Stable sort keeps provider order for equal or missing timestamps.
    results.sort(key=_sort_key, reverse=True)
    if cap is not None and cap >= 0:
        results = results[:cap]
    return results


__all__ = [
    "classify_direction",
    "normalize_transaction",
    "normalize_transactions",
    "resolve_amount",
    "resolve_counterparty",
    "resolve_fee_usd",
    "resolve_hash",
    "resolve_parties",
    "resolve_symbol",
    "resolve_value_usd",
]
