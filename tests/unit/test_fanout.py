import asyncio

import pytest

from wallet_analyzer.providers.base import ProviderRequestError
from wallet_analyzer.providers.fanout import ChainOutcome, collect, settle_all


@pytest.mark.asyncio
async def test_partial_failure_keeps_successful_chains():
    async def call(chain):
        if chain == "base":
            raise ProviderRequestError("moralis", chain, status_code=500)
        await asyncio.sleep(0)
        return [f"{chain}-1", f"{chain}-2"]

    outcomes = await settle_all(["eth", "base", "polygon"], call)

    assert [outcome.ok for outcome in outcomes] == [True, False, True]
    assert isinstance(outcomes[1].error, ProviderRequestError)
    assert collect(outcomes, provider="moralis", address="0xabc") == ["eth-1", "eth-2", "polygon-1", "polygon-2"]


@pytest.mark.asyncio
async def test_slow_failure_does_not_cancel_other_chains():
    finished = []

    async def call(chain):
        if chain == "eth":
            raise RuntimeError("boom")
        await asyncio.sleep(0.01)
        finished.append(chain)
        return [chain]

    outcomes = await settle_all(["eth", "arbitrum"], call)

    assert finished == ["arbitrum"]
    assert collect(outcomes, provider="coinbase", address="0xabc") == ["arbitrum"]


@pytest.mark.asyncio
async def test_all_chains_failing_raises_first_error():
    async def call(chain):
        raise ProviderRequestError("covalent", chain, status_code=502)

    outcomes = await settle_all(["eth", "base"], call)

    with pytest.raises(ProviderRequestError) as excinfo:
        collect(outcomes, provider="covalent", address="0xabc")
    assert excinfo.value.chain == "eth"


def test_no_chains_collects_nothing():
    assert collect([], provider="moralis", address="0xabc") == []


def test_empty_successes_are_not_failures():
    outcomes = [ChainOutcome(chain="eth", value=[]), ChainOutcome(chain="base", error=ValueError("x"))]
    assert collect(outcomes, provider="moralis", address="0xabc") == []
