from typing import List, Literal, Optional

from pydantic import Field

from .base import CamelModel

RiskLevel = Literal["Conservative", "Moderate", "Aggressive"]
InsightTone = Literal["positive", "warning", "neutral"]


class Holding(CamelModel):
    chain: str = Field(description="Canonical chain key")
    symbol: str = Field(description="Token symbol (e.g. ETH, USDC)")
    name: Optional[str] = Field(default=None, description="Full token name")
    contract_address: Optional[str] = Field(default=None, description="Token contract address (None for native assets)")
    amount: float = Field(ge=0, description="Decimal-adjusted quantity")
    decimals: int = Field(ge=0, description="Token decimal places")
    value_usd: float = Field(ge=0, description="Current USD value, 0 when unpriceable")
    value_usd_24h_ago: Optional[float] = Field(default=None, description="USD value one day prior")
    change_24h: float = Field(default=0.0, description="Percent change over the last 24 hours")
    is_native: bool = Field(default=False, description="Chain gas-paying asset")
    is_verified: bool = Field(default=True, description="Provider-reported trust flag")
    allocation_pct: float = Field(default=0.0, description="Share of portfolio USD value, 0-100")


class AnalysisSummary(CamelModel):
    net_worth: float
    net_worth_change: float
    net_worth_change_pct: float
    realized_pnl: float
    realized_pnl_pct: float
    risk_level: RiskLevel


class AnalysisInsight(CamelModel):
    title: str
    detail: str
    tone: InsightTone


class AnalysisMeta(CamelModel):
    source: str
    is_fallback: bool
    cached: bool = False


class WalletAnalysis(CamelModel):
    address: Optional[str] = None
    summary: AnalysisSummary
    tokens: List[Holding]
    insights: List[AnalysisInsight]
    meta: AnalysisMeta


class PortfolioPoint(CamelModel):
    timestamp: str = Field(description="Bucket timestamp as reported by the provider")
    value: float = Field(description="Closing USD value for the bucket")
    chain: str
