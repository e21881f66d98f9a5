"""Portfolio analytics: net worth, daily change, risk level and narrative insights."""

from __future__ import annotations

from typing import Iterable, List, Sequence

from ..types import AnalysisInsight, AnalysisMeta, AnalysisSummary, Holding, RiskLevel, WalletAnalysis
from .balances import VALUE_EPSILON

STABLE_SYMBOLS = frozenset(
    {
        "USDC",
        "USDT",
        "DAI",
        "TUSD",
        "USDP",
        "USDD",
        "BUSD",
        "LUSD",
        "FRAX",
        "GUSD",
        "EURS",
        "USDN",
        "MIM",
        "CUSDC",
    }
)

# Shared by the risk classifier and the insight rules.
CONSERVATIVE_STABLE_RATIO = 0.4
MODERATE_STABLE_RATIO = 0.15
LOW_STABLE_RATIO = 0.1
CONCENTRATION_ALLOCATION_PCT = 45.0


def is_stable(holding: Holding) -> bool:
    return holding.symbol.upper() in STABLE_SYMBOLS


def stable_ratio(holdings: Sequence[Holding], net_worth: float) -> float:
    if net_worth < VALUE_EPSILON:
        return 0.0
    stable_value = sum(holding.value_usd for holding in holdings if is_stable(holding))
    return stable_value / net_worth


def classify_risk(holdings: Sequence[Holding]) -> RiskLevel:
    total = sum(holding.value_usd for holding in holdings)
    if total < VALUE_EPSILON:
        return "Moderate"
    ratio = stable_ratio(holdings, total)
    if ratio >= CONSERVATIVE_STABLE_RATIO:
        return "Conservative"
    if ratio >= MODERATE_STABLE_RATIO:
        return "Moderate"
    return "Aggressive"


def compute_summary(holdings: Iterable[Holding]) -> AnalysisSummary:
    items = list(holdings)
    net_worth = sum(holding.value_usd for holding in items)
    prior = sum(
        holding.value_usd_24h_ago if holding.value_usd_24h_ago is not None else holding.value_usd
        for holding in items
    )
    change = net_worth - prior
    change_pct = change / prior * 100 if prior > VALUE_EPSILON else 0.0

    return AnalysisSummary(
        net_worth=net_worth,
        net_worth_change=change,
        net_worth_change_pct=change_pct,
        realized_pnl=change,
        realized_pnl_pct=change_pct,
        risk_level=classify_risk(items),
    )


def format_compact(value: float) -> str:
    """Two-decimal money formatting with K/M suffixes (1234.5 -> ``1.23K``)."""

    if value >= 1_000_000:
        return f"{value / 1_000_000:.2f}M"
    if value >= 1_000:
        return f"{value / 1_000:.2f}K"
    return f"{value:.2f}"


def build_insights(holdings: Sequence[Holding], summary: AnalysisSummary) -> List[AnalysisInsight]:
    """Evaluate the insight rules in a fixed order.

    ``holdings`` must already be sorted by value with allocations assigned.
    """

    insights: List[AnalysisInsight] = []
    net_worth = summary.net_worth

    if net_worth < VALUE_EPSILON:
        insights.append(
            AnalysisInsight(
                title="No balance detected",
                detail="We could not find any priced assets for this wallet on the configured chains.",
                tone="neutral",
            )
        )
        return insights

    ratio = stable_ratio(holdings, net_worth)
    if ratio >= CONSERVATIVE_STABLE_RATIO:
        insights.append(
            AnalysisInsight(
                title="Stablecoin reserves are strong",
                detail=(
                    f"Stable assets represent {ratio * 100:.1f}% of the portfolio, providing solid "
                    "downside protection for treasury operations."
                ),
                tone="positive",
            )
        )
    elif ratio <= LOW_STABLE_RATIO:
        insights.append(
            AnalysisInsight(
                title="Low stablecoin coverage",
                detail=(
                    f"Only {ratio * 100:.1f}% of the portfolio sits in stable assets, which may limit "
                    "runway for liabilities or payroll. Consider rotating a portion into stables."
                ),
                tone="warning",
            )
        )

    top = holdings[0] if holdings else None
    if top is not None and top.allocation_pct >= CONCENTRATION_ALLOCATION_PCT:
        insights.append(
            AnalysisInsight(
                title=f"{top.symbol} dominates exposure",
                detail=(
                    f"{top.symbol} accounts for {top.allocation_pct:.1f}% of portfolio value. "
                    "Review diversification to reduce protocol-specific risk."
                ),
                tone="warning",
            )
        )

    change = summary.net_worth_change
    change_pct = summary.net_worth_change_pct
    if abs(change) < VALUE_EPSILON:
        insights.append(
            AnalysisInsight(
                title="Flat daily performance",
                detail=(
                    "Portfolio value held steady over the last day. Monitor market catalysts to "
                    "identify upcoming opportunities."
                ),
                tone="neutral",
            )
        )
    elif change > 0:
        insights.append(
            AnalysisInsight(
                title="Positive momentum",
                detail=(
                    f"Net worth grew by ${format_compact(abs(change))} ({change_pct:.2f}%) in the last "
                    "24 hours, suggesting recent inflows or price appreciation."
                ),
                tone="positive",
            )
        )
    else:
        insights.append(
            AnalysisInsight(
                title="Net worth dipped",
                detail=(
                    f"Net worth fell by ${format_compact(abs(change))} ({change_pct:.2f}%) in the last "
                    "24 hours. Consider reviewing recent outflows or market moves."
                ),
                tone="warning",
            )
        )

    if summary.risk_level == "Conservative" and change > 0:
        insights.append(
            AnalysisInsight(
                title="Conservative stance working",
                detail=(
                    "Your stable-heavy mix is still capturing upside. Monitor if it remains aligned "
                    "with treasury targets."
                ),
                tone="positive",
            )
        )

    return insights


def analyze_holdings(
    holdings: Sequence[Holding],
    *,
    source: str,
    address: str | None = None,
) -> WalletAnalysis:
    """Assemble summary, tokens and insights from finalized holdings."""

    summary = compute_summary(holdings)
    return WalletAnalysis(
        address=address,
        summary=summary,
        tokens=list(holdings),
        insights=build_insights(holdings, summary),
        meta=AnalysisMeta(source=source, is_fallback=len(holdings) == 0),
    )


__all__ = [
    "CONCENTRATION_ALLOCATION_PCT",
    "CONSERVATIVE_STABLE_RATIO",
    "LOW_STABLE_RATIO",
    "MODERATE_STABLE_RATIO",
    "STABLE_SYMBOLS",
    "analyze_holdings",
    "build_insights",
    "classify_risk",
    "compute_summary",
    "format_compact",
    "stable_ratio",
]
