from datetime import datetime, timedelta, timezone

import pytest

from wallet_analyzer.providers import covalent
from wallet_analyzer.providers.base import ProviderRequestError
from wallet_analyzer.providers.covalent import CovalentProvider, to_portfolio_points, to_raw_balance
from wallet_analyzer.services.balances import normalize_balance

WALLET = "0x1111111111111111111111111111111111111111"


class _DummyResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def json(self):
        return self._payload


class _DummyClient:
    requests = []
    handler = None

    def __init__(self, *_, **__):
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def get(self, url, params=None, headers=None):
        _DummyClient.requests.append({"url": url, "params": params, "headers": headers})
        return _DummyClient.handler(url, params or {})


@pytest.fixture
def dummy_client(monkeypatch):
    _DummyClient.requests = []
    _DummyClient.handler = None
    monkeypatch.setattr(covalent.httpx, "AsyncClient", _DummyClient)
    return _DummyClient


def test_balance_mapping_uses_quotes():
    raw = to_raw_balance(
        {
            "contract_ticker_symbol": "ETH",
            "contract_name": "Ether",
            "contract_address": "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee",
            "contract_decimals": 18,
            "balance": "3000000000000000000",
            "quote": 9000.0,
            "quote_24h": 8500.0,
            "quote_rate": 3000.0,
            "native_token": True,
            "type": "cryptocurrency",
        },
        "eth-mainnet",
    )

    holding = normalize_balance(raw)

    assert holding.chain == "eth"
    assert holding.amount == pytest.approx(3.0)
    assert holding.value_usd == pytest.approx(9000.0)
    assert holding.value_usd_24h_ago == pytest.approx(8500.0)
    assert holding.contract_address is None


def test_portfolio_points_use_closing_quote():
    points = to_portfolio_points(
        [
            {
                "holdings": [
                    {"timestamp": "2025-05-01T00:00:00Z", "close": {"quote": 120.5}},
                    {"timestamp": "2025-05-02T00:00:00Z", "close": {}},
                    {"close": {"quote": 1}},
                ]
            }
        ],
        "eth-mainnet",
    )

    assert [(point.timestamp, point.value) for point in points] == [
        ("2025-05-01T00:00:00Z", 120.5),
        ("2025-05-02T00:00:00Z", 0.0),
    ]


@pytest.mark.asyncio
async def test_error_payload_raises_provider_error(dummy_client):
    dummy_client.handler = lambda url, params: _DummyResponse(
        {"error": True, "error_code": 400, "error_message": "Malformed address"}
    )
    provider = CovalentProvider(api_key="cqt_key", base_url="https://covalent.test", chains=["eth-mainnet"])

    with pytest.raises(ProviderRequestError) as excinfo:
        await provider.fetch_balances(WALLET)

    assert excinfo.value.status_code == 400
    assert "Malformed address" in str(excinfo.value)
    assert dummy_client.requests[0]["headers"]["Authorization"] == "Bearer cqt_key"


@pytest.mark.asyncio
async def test_transactions_follow_next_links(dummy_client):
    next_url = "https://covalent.test/eth-mainnet/address/page-2/"

    def handler(url, params):
        if url == next_url:
            return _DummyResponse({"data": {"items": [{"tx_hash": "0x2"}], "links": {"next": None}}})
        return _DummyResponse(
            {"data": {"items": [{"tx_hash": "0x1", "block_signed_at": "2025-05-01T00:00:00Z"}], "links": {"next": next_url}}}
        )

    dummy_client.handler = handler
    provider = CovalentProvider(api_key="cqt_key", base_url="https://covalent.test", chains=["eth-mainnet"])

    raws = await provider.fetch_transactions(
        WALLET, timedelta(days=30), now=datetime(2025, 5, 15, tzinfo=timezone.utc)
    )

    assert [raw.hash for raw in raws] == ["0x1", "0x2"]
    assert dummy_client.requests[0]["url"] == f"https://covalent.test/eth-mainnet/address/{WALLET}/transactions_v3/"
    assert dummy_client.requests[0]["params"]["block-signed-at-gt"] == "2025-04-15T00:00:00Z"
    assert dummy_client.requests[1]["url"] == next_url


@pytest.mark.asyncio
async def test_portfolio_history_is_collected_per_chain(dummy_client):
    dummy_client.handler = lambda url, params: _DummyResponse(
        {"data": {"items": [{"holdings": [{"timestamp": "2025-05-01T00:00:00Z", "close": {"quote": 10}}]}]}}
    )
    provider = CovalentProvider(api_key="cqt_key", base_url="https://covalent.test", chains=["eth-mainnet", "base-mainnet"])

    points = await provider.fetch_portfolio_history(WALLET, days=7)

    assert [(point.chain, point.value) for point in points] == [("eth", 10.0), ("base", 10.0)]
    assert dummy_client.requests[0]["params"]["days"] == 7
    assert dummy_client.requests[0]["url"].endswith(f"/address/{WALLET}/portfolio_v2/")
