from typing import Any, Dict

from fastapi import APIRouter

from ..config import settings
from ..providers.registry import PROVIDER_FACTORIES, get_price_oracle

router = APIRouter()


@router.get("/healthz")
async def health_check() -> Dict[str, Any]:
    """Health check endpoint that reports provider readiness"""

    provider_status: Dict[str, Any] = {}
    for name, factory in PROVIDER_FACTORIES.items():
        provider_status[name] = await factory().health_check()
    provider_status["coingecko"] = await get_price_oracle().health_check()

    ready = {"healthy", "configured"}
    # Only the selected providers decide overall health
    required = {settings.balance_provider.lower(), settings.history_provider.lower()}
    all_required_ready = all(
        provider_status.get(name, {}).get("status") in ready for name in required
    )

    available_providers = sum(
        1 for status in provider_status.values() if status["status"] in ready
    )

    return {
        "status": "healthy" if all_required_ready else "degraded",
        "providers": provider_status,
        "balance_provider": settings.balance_provider,
        "history_provider": settings.history_provider,
        "available_providers": available_providers,
        "total_providers": len(provider_status),
    }
