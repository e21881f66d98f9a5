from datetime import timedelta

import pytest

from wallet_analyzer.providers import coingecko
from wallet_analyzer.providers.coingecko import CoingeckoPriceOracle, PriceTable


class _DummyResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code
        self.elapsed = timedelta(milliseconds=42)

    def raise_for_status(self):
        return None

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
    monkeypatch.setattr(coingecko.httpx, "AsyncClient", _DummyClient)
    return _DummyClient


def test_price_table_lookup():
    table = PriceTable(native={"ethereum": 3000.0}, tokens={("polygon", "0xabc"): 1.01})

    assert table.price_for("base-mainnet", None) == 3000.0
    assert table("137", "0xABC") == 1.01
    assert table.price_for("polygon", "0xdef") is None
    assert table.price_for("unknown-chain", None) is None
    assert len(table) == 2


@pytest.mark.asyncio
async def test_fetch_prices_groups_natives_and_tokens(dummy_client):
    def handler(url, params):
        if url.endswith("/simple/price"):
            return _DummyResponse({"ethereum": {"usd": 3000}, "matic-network": {"usd": "0.5"}})
        if url.endswith("/simple/token_price/polygon-pos"):
            return _DummyResponse({"0xabc": {"usd": 1.0}})
        return _DummyResponse({}, status_code=429)

    dummy_client.handler = handler
    oracle = CoingeckoPriceOracle(api_key="demo", base_url="https://cg.test", enabled=True)

    table = await oracle.fetch_prices(
        [("eth", None), ("base", None), ("polygon", None), ("polygon", "0xABC"), ("arbitrum", "0xdef")]
    )

    native_calls = [r for r in dummy_client.requests if r["url"].endswith("/simple/price")]
    assert len(native_calls) == 1
    assert native_calls[0]["params"]["ids"] == "ethereum,matic-network"
    assert dummy_client.requests[0]["headers"]["X-CG-Demo-API-Key"] == "demo"
    assert table.price_for("base", None) == 3000.0
    assert table.price_for("polygon", None) == 0.5
    assert table.price_for("polygon", "0xabc") == 1.0
    assert table.price_for("arbitrum", "0xdef") is None


@pytest.mark.asyncio
async def test_contracts_are_batched(dummy_client):
    dummy_client.handler = lambda url, params: _DummyResponse({})
    oracle = CoingeckoPriceOracle(base_url="https://cg.test", enabled=True)

    await oracle.fetch_prices([("eth", f"0x{index:040x}") for index in range(150)])

    token_calls = [r for r in dummy_client.requests if "/simple/token_price/ethereum" in r["url"]]
    assert [len(r["params"]["contract_addresses"].split(",")) for r in token_calls] == [100, 50]


@pytest.mark.asyncio
async def test_disabled_oracle_makes_no_requests(dummy_client):
    oracle = CoingeckoPriceOracle(enabled=False)

    table = await oracle.fetch_prices([("eth", None)])

    assert len(table) == 0
    assert dummy_client.requests == []
    assert (await oracle.health_check())["status"] == "unavailable"


@pytest.mark.asyncio
async def test_health_check_pings(dummy_client):
    dummy_client.handler = lambda url, params: _DummyResponse({"gecko_says": "(V3) To the Moon!"})
    oracle = CoingeckoPriceOracle(base_url="https://cg.test", enabled=True)

    status = await oracle.health_check()

    assert status == {"status": "healthy", "latency_ms": 42}
    assert dummy_client.requests[0]["url"] == "https://cg.test/ping"
