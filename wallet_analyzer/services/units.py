"""Lenient number coercion for provider payloads.

Upstream fields arrive as ints, floats, decimal strings, digit strings, hex strings
or garbage. These helpers never raise; unusable input becomes ``None``.
"""

from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional

_DIGITS_RE = re.compile(r"^[+-]?\d+$")
_HEX_RE = re.compile(r"^0x[0-9a-fA-F]+$")

_USD_FIELDS = ("amount_usd", "usd_value")

# Anything larger is a corrupt payload, not real token precision.
MAX_DECIMALS = 255


def to_number(value: Any) -> Optional[float]:
    """Finite float for numbers and numeric strings, else ``None``."""

    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
        return number if math.isfinite(number) else None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def to_decimal(value: Any) -> Optional[Decimal]:
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value)) if math.isfinite(value) else None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if _HEX_RE.match(text):
            return Decimal(int(text, 16))
        try:
            parsed = Decimal(text)
        except InvalidOperation:
            return None
        return parsed if parsed.is_finite() else None
    return None


def to_int(value: Any) -> Optional[int]:
    """Integer for ints, digit strings and ``0x`` hex strings."""

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) and value.is_integer() else None
    if isinstance(value, str):
        text = value.strip()
        if _DIGITS_RE.match(text):
            return int(text)
        if _HEX_RE.match(text):
            return int(text, 16)
    return None


def first_decimals(candidates: Iterable[Any]) -> Optional[int]:
    """First candidate usable as a decimals count (integer in 0..MAX_DECIMALS)."""

    for candidate in candidates:
        parsed = to_int(candidate)
        if parsed is not None and 0 <= parsed <= MAX_DECIMALS:
            return parsed
    return None


def is_raw_integer(value: Any) -> bool:
    """True for values that look like integer base units rather than decimal amounts."""

    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, str):
        text = value.strip()
        return bool(_DIGITS_RE.match(text) or _HEX_RE.match(text))
    return False


def scale_raw_amount(raw: Any, decimals: int) -> Optional[Decimal]:
    """Divide integer base units by 10**decimals.

    Decimal-formatted strings and floats are taken as already-scaled quantities.
    """

    if is_raw_integer(raw):
        base = to_decimal(raw)
        if base is None:
            return None
        if not decimals:
            return base
        try:
            return base.scaleb(-decimals)
        except (InvalidOperation, OverflowError):
            return None
    return to_decimal(raw)


def usd_from_value(source: Optional[Mapping[str, Any]]) -> Optional[float]:
    """Extract a USD figure from a structured value object.

    Explicit USD fields win; a bare ``amount`` counts only when the object is
    denominated in USD.
    """

    if not isinstance(source, Mapping):
        return None
    for key in _USD_FIELDS:
        usd = to_number(source.get(key))
        if usd is not None:
            return usd
    symbol = source.get("symbol")
    if isinstance(symbol, str) and symbol.strip().upper() == "USD":
        return to_number(source.get("amount"))
    return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse ISO 8601 strings or unix seconds into an aware UTC datetime."""

    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if _DIGITS_RE.match(text):
            return parse_timestamp(int(text))
        if text.endswith("Z") or text.endswith("z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def isoformat_utc(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


__all__ = [
    "first_decimals",
    "isoformat_utc",
    "is_raw_integer",
    "parse_timestamp",
    "scale_raw_amount",
    "to_decimal",
    "to_int",
    "to_number",
    "usd_from_value",
]
