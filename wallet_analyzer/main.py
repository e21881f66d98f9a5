import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import health, wallet
from .config import settings
from .logging_config import setup_logging
from .middleware.logging_middleware import RequestLoggingMiddleware
from .services.analyzer import analysis_cache
from .services.history import history_cache

setup_logging()
logger = logging.getLogger(__name__)

RATE_LIMIT_HEADERS = ["X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset", "Retry-After"]

_CREDENTIAL_CHECKS = {
    "coinbase": ("has_coinbase_credentials", "COINBASE_API_KEY/COINBASE_API_SECRET"),
    "moralis": ("has_moralis_key", "MORALIS_API_KEY"),
    "covalent": ("has_covalent_key", "COVALENT_API_KEY"),
}


def _warn_missing_credentials() -> None:
    for role, provider in (("balance", settings.balance_provider), ("history", settings.history_provider)):
        check = _CREDENTIAL_CHECKS.get(provider.lower())
        if check is None:
            logger.warning("Unknown %s provider configured: %s", role, provider)
        elif not getattr(settings, check[0]):
            logger.warning("%s provider %s has no credentials; set %s", role.capitalize(), provider, check[1])


@asynccontextmanager
async def lifespan(_app: FastAPI):
    logger.info(
        "Starting wallet analyzer balance_provider=%s history_provider=%s coingecko=%s",
        settings.balance_provider,
        settings.history_provider,
        "on" if settings.enable_coingecko else "off",
    )
    _warn_missing_credentials()
    yield
    await analysis_cache.clear()
    await history_cache.clear()


app = FastAPI(
    title="Wallet Analyzer API",
    description="Net worth, risk and transaction history for EVM wallets across data providers",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Browser clients read the rate limit headers, so they must be exposed.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET"],
    allow_headers=["*"],
    expose_headers=RATE_LIMIT_HEADERS,
)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(health.router, tags=["Health"])
app.include_router(wallet.router, tags=["Wallet"])


@app.get("/")
async def root():
    """Service info and the active provider selection"""
    return {
        "name": "Wallet Analyzer API",
        "version": app.version,
        "endpoints": ["/api/analyze", "/api/history"],
        "docs": "/docs",
        "health": "/healthz",
        "balance_provider": settings.balance_provider,
        "history_provider": settings.history_provider,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "wallet_analyzer.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower()
    )
