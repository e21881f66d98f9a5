import pytest

from wallet_analyzer.services.balances import (
    finalize_holdings,
    normalize_balance,
    normalize_balances,
    price_key,
)
from wallet_analyzer.types import RawBalance


def test_digit_string_amount_is_scaled_by_decimals():
    raw = RawBalance(
        chain="ethereum-mainnet",
        symbol="eth",
        amount="1500000000000000000",
        decimals_hints=(18,),
        value_usd=3000,
    )

    holding = normalize_balance(raw)

    assert holding is not None
    assert holding.chain == "eth"
    assert holding.symbol == "ETH"
    assert holding.amount == pytest.approx(1.5)
    assert holding.decimals == 18
    assert holding.is_native is True


def test_decimal_string_amount_is_used_as_is():
    raw = RawBalance(chain="base", symbol="USDC", contract_address="0xA0b8", amount="12.5", decimals_hints=(6,))

    holding = normalize_balance(raw, price_lookup=lambda chain, contract: 1.0)

    assert holding.amount == pytest.approx(12.5)
    assert holding.value_usd == pytest.approx(12.5)
    assert holding.contract_address == "0xa0b8"


def test_pre_divided_amount_beats_raw_units():
    raw = RawBalance(
        chain="polygon",
        symbol="MATIC",
        amount_decimal="2.25",
        raw_amount="999999999999999999999",
        value_usd=2,
    )

    assert normalize_balance(raw).amount == pytest.approx(2.25)


def test_hex_raw_amount_falls_back_to_native_decimals():
    raw = RawBalance(chain="137", raw_amount="0xde0b6b3a7640000", price_usd=0.5)

    holding = normalize_balance(raw)

    assert holding.chain == "polygon"
    assert holding.symbol == "POLYGON"
    assert holding.amount == pytest.approx(1.0)
    assert holding.value_usd == pytest.approx(0.5)


def test_reported_value_wins_over_price_lookup():
    raw = RawBalance(chain="eth", symbol="ETH", amount="2.0", value_usd=5000)
    calls = []

    def lookup(chain, contract):
        calls.append((chain, contract))
        return 1.0

    holding = normalize_balance(raw, price_lookup=lookup)

    assert holding.value_usd == pytest.approx(5000)
    assert calls == []


def test_value_objects_only_count_usd_amounts():
    raw = RawBalance(
        chain="eth",
        symbol="ETH",
        amount="1.0",
        value_objects=({"amount": "1.0", "symbol": "ETH"}, {"amount": "-2500", "symbol": "usd"}),
    )

    assert normalize_balance(raw).value_usd == pytest.approx(2500)


def test_price_lookup_uses_holding_chain_and_contract():
    raw = RawBalance(chain="arbitrum-one", symbol="ARB", contract_address="0xB50721", amount="10", token_type="erc20")
    seen = []

    def lookup(chain, contract):
        seen.append((chain, contract))
        return 1.2

    holding = normalize_balance(raw, price_lookup=lookup)

    assert seen == [("arbitrum", "0xb50721")]
    assert holding.value_usd == pytest.approx(12.0)
    assert price_key(raw) == ("arbitrum", "0xb50721")


def test_dust_without_value_is_dropped():
    raw = RawBalance(chain="eth", symbol="ETH", amount="0.00000001")
    assert normalize_balance(raw) is None


def test_scam_assets_are_dropped():
    raw = RawBalance(chain="eth", symbol="FREE", contract_address="0x1", amount="100", value_usd=10, is_scam=True)
    assert normalize_balance(raw) is None


def test_unverified_high_value_tokens_are_dropped():
    expensive = RawBalance(
        chain="eth", symbol="FAKE", contract_address="0x1", amount="1", value_usd=6000, is_verified=False
    )
    large = RawBalance(
        chain="eth", symbol="BIG", contract_address="0x2", amount="20000", value_usd=20000, is_verified=False
    )
    modest = RawBalance(
        chain="eth", symbol="OK", contract_address="0x3", amount="100", value_usd=100, is_verified=False
    )

    assert normalize_balance(expensive) is None
    assert normalize_balance(large) is None
    assert normalize_balance(modest) is not None


def test_unverified_native_asset_is_kept():
    raw = RawBalance(chain="eth", symbol="ETH", amount="10", value_usd=30000, is_verified=False)
    assert normalize_balance(raw) is not None


def test_prior_value_from_change_object():
    raw = RawBalance(
        chain="eth",
        symbol="ETH",
        amount="1",
        value_usd=110,
        change_24h={"amount_usd": "10"},
    )

    holding = normalize_balance(raw)

    assert holding.value_usd_24h_ago == pytest.approx(100)
    assert holding.change_24h == pytest.approx(10.0)


def test_negative_prior_value_is_unknown():
    raw = RawBalance(chain="eth", symbol="ETH", amount="1", value_usd=5, change_24h=20)

    holding = normalize_balance(raw)

    assert holding.value_usd_24h_ago is None
    assert holding.change_24h == 0.0


def test_finalize_holdings_assigns_allocations_in_value_order():
    holdings = normalize_balances(
        [
            RawBalance(chain="eth", symbol="USDC", contract_address="0xusdc", amount="4000", value_usd=4000),
            RawBalance(chain="eth", symbol="ETH", amount="2", value_usd=6000),
        ]
    )

    assert [holding.symbol for holding in holdings] == ["ETH", "USDC"]
    assert [holding.allocation_pct for holding in holdings] == pytest.approx([60.0, 40.0])
    assert sum(holding.allocation_pct for holding in holdings) == pytest.approx(100.0, abs=1e-6)


def test_finalize_holdings_zero_total_leaves_allocations_at_zero():
    holdings = normalize_balances([RawBalance(chain="eth", symbol="ETH", amount="1")])

    assert len(holdings) == 1
    assert holdings[0].allocation_pct == 0.0


def test_normalization_is_idempotent():
    raws = [
        RawBalance(chain="eth", symbol="ETH", amount="2", value_usd=6000),
        RawBalance(chain="base", symbol="USDC", contract_address="0xusdc", amount="4000", value_usd=4000),
    ]

    first = normalize_balances(raws)
    second = normalize_balances(raws)

    assert [h.model_dump() for h in first] == [h.model_dump() for h in second]
    assert finalize_holdings(first) == first


def test_zero_prior_value_is_unknown():
    raw = RawBalance(chain="eth", symbol="ETH", amount="1", value_usd=5, change_24h=5)

    holding = normalize_balance(raw)

    assert holding.value_usd_24h_ago is None
    assert holding.change_24h == 0.0


def test_absurd_decimals_hint_falls_back_to_default():
    raw = RawBalance(
        chain="eth",
        symbol="BAD",
        contract_address="0x00000000000000000000000000000000000000aa",
        raw_amount="1000",
        decimals_hints=(10_000_000,),
        value_usd=12,
    )

    holding = normalize_balance(raw)

    assert holding is not None
    assert holding.decimals == 18
    assert holding.value_usd == pytest.approx(12)
