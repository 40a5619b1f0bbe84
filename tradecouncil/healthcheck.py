"""Provider health checks: ping each API before starting an analysis."""

import asyncio
import logging

from tradecouncil.providers.base import AIProvider

logger = logging.getLogger(__name__)

_PING_SYSTEM = "You are a connectivity check."
_TIMEOUT_SEC = 15.0


async def _check_one(name: str, provider: AIProvider, prompt: str) -> tuple[str, bool, str]:
    """Ping a single provider. Returns (name, ok, error_message)."""
    try:
        await asyncio.wait_for(
            provider.generate_content(_PING_SYSTEM, prompt),
            timeout=_TIMEOUT_SEC,
        )
        return name, True, ""
    except TimeoutError:
        return name, False, f"No reply within {_TIMEOUT_SEC:.0f}s"
    except Exception as exc:
        logger.debug("Health check for %s failed: %s", name, exc)
        return name, False, str(exc)


async def run_health_checks(
    providers: dict[str, AIProvider],
    prompt: str,
) -> dict[str, tuple[bool, str]]:
    """Ping all providers in parallel with the configured health-check prompt.

    Returns:
        Dict mapping provider name -> (ok, error_message).
        error_message is "" when ok is True.
    """
    results = await asyncio.gather(*(_check_one(n, p, prompt) for n, p in providers.items()))
    return {name: (ok, err) for name, ok, err in results}
