import pytest

from wallet_analyzer.services.balances import finalize_holdings
from wallet_analyzer.services.portfolio import (
    analyze_holdings,
    build_insights,
    classify_risk,
    compute_summary,
    format_compact,
)
from wallet_analyzer.types import Holding


def _holding(symbol, value, prior=None, **kwargs):
    return Holding(
        chain=kwargs.pop("chain", "eth"),
        symbol=symbol,
        amount=kwargs.pop("amount", 1.0),
        decimals=kwargs.pop("decimals", 18),
        value_usd=value,
        value_usd_24h_ago=prior,
        **kwargs,
    )


def test_balanced_portfolio_is_conservative():
    holdings = finalize_holdings([_holding("USDC", 4000.0, decimals=6), _holding("ETH", 6000.0, is_native=True)])

    analysis = analyze_holdings(holdings, source="coinbase", address="0xabc")

    assert analysis.summary.net_worth == pytest.approx(10000.0)
    assert analysis.summary.risk_level == "Conservative"
    assert [token.allocation_pct for token in analysis.tokens] == pytest.approx([60.0, 40.0])
    assert [insight.title for insight in analysis.insights] == [
        "Stablecoin reserves are strong",
        "ETH dominates exposure",
        "Flat daily performance",
    ]
    assert analysis.meta.source == "coinbase"
    assert analysis.meta.is_fallback is False


@pytest.mark.parametrize(
    "stable_value, expected",
    [(3999.0, "Moderate"), (1500.0, "Moderate"), (1499.0, "Aggressive"), (0.0, "Aggressive")],
)
def test_risk_thresholds(stable_value, expected):
    holdings = [_holding("USDT", stable_value), _holding("ETH", 10000.0 - stable_value)]
    assert classify_risk(holdings) == expected


def test_empty_portfolio_defaults_to_moderate():
    analysis = analyze_holdings([], source="moralis")

    assert analysis.summary.net_worth == 0
    assert analysis.summary.risk_level == "Moderate"
    assert analysis.meta.is_fallback is True
    assert [insight.title for insight in analysis.insights] == ["No balance detected"]


def test_change_uses_current_value_when_prior_unknown():
    summary = compute_summary([_holding("ETH", 1100.0, prior=1000.0), _holding("WBTC", 500.0)])

    assert summary.net_worth_change == pytest.approx(100.0)
    assert summary.net_worth_change_pct == pytest.approx(100.0 / 1500.0 * 100)
    assert summary.realized_pnl == summary.net_worth_change
    assert summary.realized_pnl_pct == summary.net_worth_change_pct


def test_positive_momentum_for_conservative_wallet():
    holdings = finalize_holdings([_holding("USDC", 5000.0, prior=5000.0), _holding("ETH", 6500.0, prior=5000.0)])
    summary = compute_summary(holdings)

    insights = build_insights(holdings, summary)
    titles = [insight.title for insight in insights]

    assert titles == [
        "Stablecoin reserves are strong",
        "ETH dominates exposure",
        "Positive momentum",
        "Conservative stance working",
    ]
    assert "$1.50K (15.00%)" in insights[2].detail


def test_drawdown_with_low_stable_coverage():
    holdings = finalize_holdings(
        [
            _holding("ETH", 4000.0, prior=5000.0),
            _holding("ARB", 3000.0, prior=3000.0),
            _holding("OP", 2500.0, prior=2500.0),
            _holding("DAI", 500.0, prior=500.0),
        ]
    )
    summary = compute_summary(holdings)

    insights = build_insights(holdings, summary)

    assert summary.risk_level == "Aggressive"
    assert [insight.title for insight in insights] == ["Low stablecoin coverage", "Net worth dipped"]
    assert insights[0].tone == "warning"
    assert "5.0%" in insights[0].detail
    assert "$1.00K (-9.09%)" in insights[1].detail


@pytest.mark.parametrize(
    "value, expected",
    [(12.346, "12.35"), (1234.5, "1.23K"), (2_500_000, "2.50M"), (999.999, "1000.00")],
)
def test_format_compact(value, expected):
    assert format_compact(value) == expected
