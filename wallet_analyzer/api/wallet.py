import logging
from typing import Awaitable, Callable, Optional, TypeVar

from fastapi import APIRouter, HTTPException, Query, Response, status

from ..middleware.rate_limit import RateLimitDecision, RateLimitExceeded, get_rate_limiter
from ..providers.base import ProviderConfigurationError, ProviderError
from ..services.address import AddressResolutionError, resolve_address
from ..services.analyzer import analyze_wallet
from ..services.history import get_wallet_history
from ..types import WalletAnalysis, WalletHistory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

T = TypeVar("T")


def _require_address(address: Optional[str]) -> str:
    if address is None or not address.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="address is required")
    return address.strip()


def _apply_rate_limit(scope: str, identifier: str, response: Response) -> RateLimitDecision:
    try:
        decision = get_rate_limiter().enforce(scope, identifier.lower())
    except RateLimitExceeded as exc:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="rate limit exceeded",
            headers=exc.decision.headers(),
        ) from exc
    response.headers.update(decision.headers())
    return decision


async def _run(
    action: str,
    raw_address: str,
    handler: Callable[[str], Awaitable[T]],
    decision: RateLimitDecision,
) -> T:
    headers = decision.headers()
    try:
        resolved = await resolve_address(raw_address)
    except AddressResolutionError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc), headers=headers) from exc

    try:
        return await handler(resolved)
    except ProviderConfigurationError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc), headers=headers
        ) from exc
    except ProviderError as exc:
        logger.warning("Unable to %s address=%s error=%s", action, resolved, exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc), headers=headers) from exc


@router.get("/analyze", response_model=WalletAnalysis)
async def analyze(response: Response, address: Optional[str] = Query(default=None)) -> WalletAnalysis:
    """Net worth, holdings, risk level and insights for a wallet"""
    raw_address = _require_address(address)
    decision = _apply_rate_limit("analyze", raw_address, response)
    return await _run("analyze wallet", raw_address, analyze_wallet, decision)


@router.get("/history", response_model=WalletHistory)
async def history(response: Response, address: Optional[str] = Query(default=None)) -> WalletHistory:
    """Recent transactions for a wallet, newest first"""
    raw_address = _require_address(address)
    decision = _apply_rate_limit("history", raw_address, response)
    return await _run("retrieve wallet history", raw_address, get_wallet_history, decision)
