"""Settle-all concurrency for per-chain provider calls."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Iterable, List, Optional, Sequence, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ChainOutcome(Generic[T]):
    """Result of one per-chain call: either ``value`` or ``error`` is set."""

    chain: str
    value: Optional[List[T]] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def settle_all(
    chains: Iterable[str],
    call: Callable[[str], Awaitable[List[T]]],
) -> List[ChainOutcome[T]]:
    """Run ``call`` for every chain concurrently and wait for all of them.

    One chain failing never cancels the others.
    """

    chain_list = list(chains)
    results = await asyncio.gather(*(call(chain) for chain in chain_list), return_exceptions=True)

    outcomes: List[ChainOutcome[T]] = []
    for chain, result in zip(chain_list, results):
        if isinstance(result, asyncio.CancelledError):
            raise result
        if isinstance(result, BaseException):
            outcomes.append(ChainOutcome(chain=chain, error=result))
        else:
            outcomes.append(ChainOutcome(chain=chain, value=list(result or [])))
    return outcomes


def collect(
    outcomes: Sequence[ChainOutcome[T]],
    *,
    provider: str,
    address: str,
) -> List[T]:
    """Flatten successful outcomes; raise the first failure only if every chain failed."""

    items: List[T] = []
    failures: List[ChainOutcome[T]] = []
    for outcome in outcomes:
        if outcome.ok:
            items.extend(outcome.value or [])
            continue
        failures.append(outcome)
        logger.warning(
            "%s fetch failed chain=%s address=%s error=%s",
            provider,
            outcome.chain,
            address,
            type(outcome.error).__name__,
        )

    if outcomes and len(failures) == len(outcomes):
        raise failures[0].error  # type: ignore[misc]
    return items


__all__ = ["ChainOutcome", "collect", "settle_all"]
