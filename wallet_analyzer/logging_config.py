"""
Structured logging configuration using structlog.

Every record, whether emitted through structlog or stdlib ``logging``, passes the
credential redactor before rendering. Provider keys and CDP bearer tokens never
reach the output.
"""

import logging
import re
import sys
from typing import Any, Iterable, List, MutableMapping, Optional

import structlog

from .config import settings

REDACTED = "[redacted]"

SENSITIVE_KEYS = frozenset(
    {
        "authorization",
        "api_key",
        "api_secret",
        "x-api-key",
        "x-cg-demo-api-key",
        "token",
        "private_key",
    }
)

_BEARER_RE = re.compile(r"(Bearer\s+)[A-Za-z0-9._\-]+")


def _configured_secrets() -> List[str]:
    candidates = (
        settings.coinbase_api_secret,
        settings.moralis_api_key,
        settings.covalent_api_key,
        settings.coingecko_api_key,
    )
    # Very short values would mask unrelated text.
    return [secret for secret in candidates if secret and len(secret) >= 8]


def _scrub(text: str, secrets: Iterable[str]) -> str:
    text = _BEARER_RE.sub(rf"\1{REDACTED}", text)
    for secret in secrets:
        text = text.replace(secret, REDACTED)
    return text


def redact_secrets(
    _logger: Any, _method: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Mask credential-bearing keys and any configured secret inside string values."""

    secrets = _configured_secrets()
    for key, value in list(event_dict.items()):
        if key.lower() in SENSITIVE_KEYS:
            event_dict[key] = REDACTED
        elif isinstance(value, str):
            event_dict[key] = _scrub(value, secrets)
    return event_dict


def _build_handler(renderer: Any, pre_chain: List[Any]) -> logging.Handler:
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            redact_secrets,
            renderer,
        ],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    return handler


def setup_logging(log_level: Optional[str] = None) -> None:
    """Configure structlog and route stdlib logging through it.

    Args:
        log_level: Override log level (default: from settings.log_level)
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)

    pre_chain: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if level == logging.DEBUG:
        renderer: Any = structlog.dev.ConsoleRenderer()
    else:
        pre_chain.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(_build_handler(renderer, pre_chain))
    root.setLevel(level)

    # httpx logs full request URLs, and Covalent next links carry query strings.
    for name in ("uvicorn.access", "httpcore", "httpx"):
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["REDACTED", "SENSITIVE_KEYS", "redact_secrets", "setup_logging"]
