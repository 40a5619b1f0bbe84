"""Council orchestration: parallel provider calls with partial-failure tolerance."""

import asyncio
import logging
import time

from tradecouncil.models import CouncilRound, Part, ProviderCallOutcome, ProviderFailure, ProviderResponse
from tradecouncil.providers.base import AIProvider, ProviderError

logger = logging.getLogger(__name__)


class AllProvidersFailedError(Exception):
    """Raised when no council member produced a response."""

    def __init__(self, failures: list[ProviderFailure]) -> None:
        self.failures = failures
        if failures:
            detail = "; ".join(f"{f.provider}: {f.error}" for f in failures)
            message = f"Council Mode Failed: All providers failed to generate a response ({detail})"
        else:
            message = "Council Mode Failed: No providers are configured"
        super().__init__(message)


async def _call_provider(
    provider: AIProvider,
    system_instruction: str,
    user_prompt: str | list[Part],
) -> ProviderCallOutcome:
    """Call a single provider once.

    Never raises for provider failures; returns ProviderFailure instead.
    Cancellation still propagates.
    """
    start = time.monotonic()
    try:
        response = await provider.generate_content(system_instruction, user_prompt)
    except ProviderError as exc:
        logger.warning("Provider %s failed in council: %s", provider.name(), exc)
        return ProviderFailure(provider=provider.name(), error=exc)
    except Exception as exc:
        err = ProviderError(provider.name(), f"Unexpected error: {exc}")
        logger.warning("Provider %s unexpected failure in council: %s", provider.name(), exc)
        return ProviderFailure(provider=provider.name(), error=err)

    return ProviderResponse(
        provider=provider.name(),
        model=provider.model_string(),
        text=response.text,
        token_count=response.usage.total_token_count,
        latency_sec=time.monotonic() - start,
    )


async def gather_opinions(
    providers: list[AIProvider],
    system_instruction: str,
    user_prompt: str | list[Part],
) -> CouncilRound:
    """Ask every provider concurrently and wait for all of them to settle.

    Args:
        providers: Providers with a usable credential, in registration order.
        system_instruction: Strategy rules shared by every member.
        user_prompt: Market data text or chart parts.

    Returns:
        CouncilRound whose outcomes follow the order of ``providers``.

    Raises:
        AllProvidersFailedError: If no provider succeeded, or none were given.
    """
    if not providers:
        raise AllProvidersFailedError([])

    logger.info("Convening council with %d providers: %s", len(providers), ", ".join(p.name() for p in providers))

    outcomes = await asyncio.gather(
        *(_call_provider(p, system_instruction, user_prompt) for p in providers)
    )
    council_round = CouncilRound(outcomes=list(outcomes))

    if not council_round.successes:
        raise AllProvidersFailedError(council_round.failures)

    logger.info(
        "Council complete: %d/%d providers succeeded",
        len(council_round.successes),
        len(providers),
    )
    return council_round
