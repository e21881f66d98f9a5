"""
Chain identity resolution.

Every provider names chains differently (numeric ids, ``eip155:`` URIs, hex ids,
``eth-mainnet`` style slugs...). All of them collapse into one canonical chain key
through the static tables below.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

DEFAULT_CHAIN = "eth"
DEFAULT_DECIMALS = 18

_EIP155_RE = re.compile(r"^eip155:(\d+)$")
_HEX_CHAIN_ID_RE = re.compile(r"^0x[0-9a-f]+$")


@dataclass(frozen=True)
class ChainMetadata:
    """Static facts about one canonical chain."""
    key: str
    chain_id: int
    native_symbol: str
    native_decimals: int = DEFAULT_DECIMALS
    explorer_tx_url: Optional[str] = None
    coingecko_native_id: Optional[str] = None
    coingecko_platform: Optional[str] = None


_CHAINS = (
    ChainMetadata("eth", 1, "ETH", explorer_tx_url="https://etherscan.io/tx/",
                  coingecko_native_id="ethereum", coingecko_platform="ethereum"),
    ChainMetadata("base", 8453, "ETH", explorer_tx_url="https://basescan.org/tx/",
                  coingecko_native_id="ethereum", coingecko_platform="base"),
    ChainMetadata("polygon", 137, "MATIC", explorer_tx_url="https://polygonscan.com/tx/",
                  coingecko_native_id="matic-network", coingecko_platform="polygon-pos"),
    ChainMetadata("arbitrum", 42161, "ETH", explorer_tx_url="https://arbiscan.io/tx/",
                  coingecko_native_id="ethereum", coingecko_platform="arbitrum-one"),
    ChainMetadata("optimism", 10, "ETH", explorer_tx_url="https://optimistic.etherscan.io/tx/",
                  coingecko_native_id="ethereum", coingecko_platform="optimistic-ethereum"),
    ChainMetadata("bsc", 56, "BNB", explorer_tx_url="https://bscscan.com/tx/",
                  coingecko_native_id="binancecoin", coingecko_platform="binance-smart-chain"),
    ChainMetadata("avalanche", 43114, "AVAX", explorer_tx_url="https://snowtrace.io/tx/",
                  coingecko_native_id="avalanche-2", coingecko_platform="avalanche"),
    ChainMetadata("fantom", 250, "FTM", explorer_tx_url="https://ftmscan.com/tx/",
                  coingecko_native_id="fantom", coingecko_platform="fantom"),
    ChainMetadata("zksync", 324, "ETH", explorer_tx_url="https://explorer.zksync.io/tx/",
                  coingecko_native_id="ethereum", coingecko_platform="zksync"),
    ChainMetadata("linea", 59144, "ETH", explorer_tx_url="https://lineascan.build/tx/",
                  coingecko_native_id="ethereum", coingecko_platform="linea"),
    ChainMetadata("polygon-zkevm", 1101, "ETH", explorer_tx_url="https://zkevm.polygonscan.com/tx/",
                  coingecko_native_id="ethereum", coingecko_platform="polygon-zkevm"),
    ChainMetadata("scroll", 534352, "ETH", explorer_tx_url="https://scrollscan.com/tx/",
                  coingecko_native_id="ethereum", coingecko_platform="scroll"),
    ChainMetadata("metis", 1088, "METIS", explorer_tx_url="https://andromeda-explorer.metis.io/tx/",
                  coingecko_native_id="metis-token", coingecko_platform="metis-andromeda"),
    ChainMetadata("klaytn", 8217, "KLAY", explorer_tx_url="https://klaytnscope.com/tx/",
                  coingecko_native_id="klay-token", coingecko_platform="klay-token"),
    ChainMetadata("celo", 42220, "CELO", explorer_tx_url="https://celoscan.io/tx/",
                  coingecko_native_id="celo", coingecko_platform="celo"),
    ChainMetadata("moonbeam", 1284, "GLMR", explorer_tx_url="https://moonscan.io/tx/",
                  coingecko_native_id="moonbeam", coingecko_platform="moonbeam"),
    ChainMetadata("moonriver", 1285, "MOVR", explorer_tx_url="https://moonriver.moonscan.io/tx/",
                  coingecko_native_id="moonriver", coingecko_platform="moonriver"),
    ChainMetadata("aurora", 1313161554, "ETH", explorer_tx_url="https://explorer.aurora.dev/tx/",
                  coingecko_native_id="ethereum", coingecko_platform="aurora"),
    ChainMetadata("cronos", 25, "CRO", explorer_tx_url="https://cronoscan.com/tx/",
                  coingecko_native_id="crypto-com-chain", coingecko_platform="cronos"),
    ChainMetadata("gnosis", 100, "XDAI", explorer_tx_url="https://gnosisscan.io/tx/",
                  coingecko_native_id="xdai", coingecko_platform="xdai"),
    ChainMetadata("harmony", 1666600000, "ONE", explorer_tx_url="https://explorer.harmony.one/tx/",
                  coingecko_native_id="harmony", coingecko_platform="harmony-shard-0"),
)

# Provider-specific spellings on top of each chain's key and numeric id.
_EXTRA_ALIASES: dict[str, tuple[str, ...]] = {
    "eth": ("ethereum", "mainnet", "ethereum-mainnet", "eth-mainnet", "homestead"),
    "base": ("base-mainnet",),
    "polygon": ("matic", "polygon-mainnet", "matic-mainnet", "polygon-pos"),
    "arbitrum": ("arbitrum-one", "arbitrum-mainnet", "arbitrum-one-mainnet"),
    "optimism": ("optimism-mainnet", "optimistic-ethereum", "op-mainnet"),
    "bsc": ("bnb", "bnb-mainnet", "bsc-mainnet", "binance-smart-chain"),
    "avalanche": ("avax", "avalanche-mainnet", "avalanche-c-chain"),
    "fantom": ("fantom-mainnet", "ftm"),
    "zksync": ("zksync-era", "zksync-mainnet"),
    "linea": ("linea-mainnet",),
    "polygon-zkevm": ("polygon-zkevm-mainnet",),
    "scroll": ("scroll-mainnet",),
    "metis": ("metis-andromeda", "metis-mainnet"),
    "klaytn": ("klaytn-mainnet",),
    "celo": ("celo-mainnet",),
    "moonbeam": ("moonbeam-mainnet",),
    "moonriver": ("moonriver-mainnet", "moonbeam-moonriver"),
    "aurora": ("aurora-mainnet",),
    "cronos": ("cronos-mainnet",),
    "gnosis": ("xdai", "gnosis-mainnet"),
    "harmony": ("harmony-mainnet",),
}


def _build_alias_table() -> Mapping[str, str]:
    table: dict[str, str] = {}
    for meta in _CHAINS:
        table[meta.key] = meta.key
        table[str(meta.chain_id)] = meta.key
        table[f"eip155:{meta.chain_id}"] = meta.key
        for alias in _EXTRA_ALIASES.get(meta.key, ()):
            table[alias] = meta.key
    return MappingProxyType(table)


CHAIN_ALIASES: Mapping[str, str] = _build_alias_table()
CHAIN_METADATA: Mapping[str, ChainMetadata] = MappingProxyType({meta.key: meta for meta in _CHAINS})
CHAIN_IDS: Mapping[int, str] = MappingProxyType({meta.chain_id: meta.key for meta in _CHAINS})


def canonicalize_chain(raw: str | int | None) -> str:
    """Collapse any provider chain identifier into a canonical chain key.

    Unknown identifiers pass through lower-cased so records still land in a
    bucket; missing identifiers default to Ethereum mainnet.
    """

    if raw is None or isinstance(raw, bool):
        return DEFAULT_CHAIN
    key = str(raw).strip().lower()
    if not key:
        return DEFAULT_CHAIN

    canonical = CHAIN_ALIASES.get(key)
    if canonical:
        return canonical

    match = _EIP155_RE.match(key)
    if match:
        return CHAIN_IDS.get(int(match.group(1)), match.group(1))

    if _HEX_CHAIN_ID_RE.match(key) and len(key) <= 18:
        chain_id = int(key, 16)
        if chain_id in CHAIN_IDS:
            return CHAIN_IDS[chain_id]

    return key


def chain_metadata(chain: str | int | None) -> Optional[ChainMetadata]:
    return CHAIN_METADATA.get(canonicalize_chain(chain))


def native_decimals(chain: str | int | None) -> int:
    meta = chain_metadata(chain)
    return meta.native_decimals if meta else DEFAULT_DECIMALS


def native_symbol(chain: str | int | None) -> Optional[str]:
    meta = chain_metadata(chain)
    return meta.native_symbol if meta else None


def explorer_tx_url(chain: str | int | None, tx_hash: str) -> Optional[str]:
    meta = chain_metadata(chain)
    if not meta or not meta.explorer_tx_url or not tx_hash:
        return None
    return f"{meta.explorer_tx_url}{tx_hash}"


__all__ = [
    "CHAIN_ALIASES",
    "CHAIN_IDS",
    "CHAIN_METADATA",
    "ChainMetadata",
    "DEFAULT_CHAIN",
    "DEFAULT_DECIMALS",
    "canonicalize_chain",
    "chain_metadata",
    "explorer_tx_url",
    "native_decimals",
    "native_symbol",
]
