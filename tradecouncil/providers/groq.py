"""Groq provider using openai SDK (OpenAI-compatible API)."""

import logging

from openai import AsyncOpenAI

from tradecouncil.providers.base import ProviderError
from tradecouncil.providers.openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)


class GroqProvider(OpenAIProvider):
    """Groq provider via OpenAI-compatible API.

    Requested models from a retired family are swapped for the configured
    default instead of failing at the API.
    """

    def _build_client(self, api_key: str) -> AsyncOpenAI:
        if not self._config.base_url:
            raise ProviderError(self._config.name, "base_url is required for Groq provider")
        return AsyncOpenAI(api_key=api_key, base_url=self._config.base_url)

    def _resolve_model(self, model: str | None) -> str:
        requested = model or self._config.model
        if any(family in requested for family in self._config.deprecated_models):
            logger.warning("Deprecated model %s detected. Switching to %s", requested, self._config.model)
            return self._config.model
        return requested
