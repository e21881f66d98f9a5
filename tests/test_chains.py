import pytest

from wallet_analyzer.services.chains import (
    canonicalize_chain,
    chain_metadata,
    explorer_tx_url,
    native_decimals,
    native_symbol,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, "eth"),
        ("", "eth"),
        ("Ethereum", "eth"),
        ("eth-mainnet", "eth"),
        (1, "eth"),
        ("0x1", "eth"),
        ("eip155:8453", "base"),
        ("matic", "polygon"),
        ("0x89", "polygon"),
        ("arbitrum-one", "arbitrum"),
        ("op-mainnet", "optimism"),
        ("bnb-mainnet", "bsc"),
        ("59144", "linea"),
        ("1101", "polygon-zkevm"),
        ("xdai", "gnosis"),
        ("eip155:424242", "424242"),
        ("Some-New-Chain", "some-new-chain"),
    ],
)
def test_canonicalize_chain(raw, expected):
    assert canonicalize_chain(raw) == expected


def test_canonicalize_is_idempotent():
    for raw in ("ethereum-mainnet", "137", "eip155:10", "avax", "unknown-l2"):
        once = canonicalize_chain(raw)
        assert canonicalize_chain(once) == once


def test_native_asset_facts():
    assert native_symbol("polygon") == "MATIC"
    assert native_symbol("bsc") == "BNB"
    assert native_symbol("unknown") is None
    assert native_decimals("unknown") == 18
    assert chain_metadata("base").chain_id == 8453


def test_explorer_urls():
    assert explorer_tx_url("arbitrum", "0xabc") == "https://arbiscan.io/tx/0xabc"
    assert explorer_tx_url("unknown", "0xabc") is None
    assert explorer_tx_url("eth", "") is None
