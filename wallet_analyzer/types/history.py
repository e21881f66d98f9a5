from typing import List, Literal, Optional

from pydantic import Field

from .base import CamelModel

Direction = Literal["in", "out", "internal"]


class WalletTransaction(CamelModel):
    hash: str = Field(description="Transaction hash or block-derived fallback id")
    timestamp: Optional[str] = Field(default=None, description="ISO 8601 event time")
    direction: Direction
    value_usd: Optional[float] = None
    amount: Optional[float] = None
    gas_fee_usd: Optional[float] = None
    gas_fee: Optional[float] = Field(default=None, description="Fee in native units")
    symbol: Optional[str] = None
    counterparty: Optional[str] = Field(default=None, description="Label preferred over raw address")
    chain: str
    explorer_url: Optional[str] = None


class HistoryMeta(CamelModel):
    source: str
    is_fallback: bool
    cached: bool = False


class WalletHistory(CamelModel):
    address: Optional[str] = None
    history: List[WalletTransaction]
    meta: HistoryMeta
