"""AiManager: single-provider passthrough or council mode behind one call shape."""

import logging
from typing import Any

from config.config_loader import ModelConfig, PromptsConfig
from tradecouncil.council import AllProvidersFailedError, gather_opinions
from tradecouncil.models import ApiConfiguration, ChatMessage, FinalVerdict, Part, StandardizedResponse, Usage
from tradecouncil.providers.base import AIProvider
from tradecouncil.providers.gemini import GeminiProvider
from tradecouncil.providers.groq import GroqProvider
from tradecouncil.providers.openai_provider import OpenAIProvider
from tradecouncil.synthesis import pick_judge, synthesize

logger = logging.getLogger(__name__)

COUNCIL = "council"

# Registration order is also council dispatch and transcript order.
PROVIDER_CLASSES: dict[str, type[AIProvider]] = {
    "gemini": GeminiProvider,
    "openai": OpenAIProvider,
    "groq": GroqProvider,
}


class AiManager:
    """Routes generation requests to one provider or to the council.

    Credentials come only from ``api_config``; nothing here reads the
    environment. ``clients`` lets the composition root hand in reusable SDK
    clients (or fakes) keyed by provider name.
    """

    def __init__(
        self,
        api_config: ApiConfiguration,
        preferred_provider: str,
        models: dict[str, ModelConfig],
        prompts: PromptsConfig,
        clients: dict[str, Any] | None = None,
    ) -> None:
        if preferred_provider != COUNCIL and preferred_provider not in PROVIDER_CLASSES:
            raise ValueError(f"Unknown provider: {preferred_provider}")
        self._api_config = api_config
        self._preferred = preferred_provider
        self._models = models
        self._prompts = prompts
        self._clients = clients or {}
        self._providers: dict[str, AIProvider] = {}

    @property
    def preferred_provider(self) -> str:
        return self._preferred

    def resolve_api_key(self, name: str) -> str | None:
        """Caller key for ``name``; Gemini may fall back to the default key."""
        key = getattr(self._api_config, f"{name}_api_key", None)
        key = (key or "").strip() or None
        if key is None and name == "gemini" and self._api_config.use_default_credential_if_absent:
            key = (self._api_config.default_gemini_api_key or "").strip() or None
        return key

    def available_providers(self) -> list[str]:
        """Provider names with a usable credential, in registration order."""
        return [
            name for name in PROVIDER_CLASSES
            if name in self._models and self.resolve_api_key(name)
        ]

    def build_provider(self, name: str) -> AIProvider:
        """Return the provider for ``name``, constructing it on first use.

        Raises:
            MissingCredentialError: If no key exists and no client was injected.
            ValueError: If ``name`` is not a known provider.
        """
        if name not in PROVIDER_CLASSES:
            raise ValueError(f"Unknown provider: {name}")
        if name not in self._providers:
            if name not in self._models:
                raise ValueError(f"No model settings for provider: {name}")
            self._providers[name] = PROVIDER_CLASSES[name](
                self._models[name],
                self.resolve_api_key(name),
                client=self._clients.get(name),
            )
        return self._providers[name]

    def council_members(self) -> dict[str, AIProvider]:
        return {name: self.build_provider(name) for name in self.available_providers()}

    async def generate_content(
        self,
        system_instruction: str,
        user_prompt: str | list[Part],
        model: str | None = None,
    ) -> StandardizedResponse:
        """Generate with the preferred provider, or the council.

        Council mode ignores ``model``; each member uses its configured model.
        """
        try:
            if self._preferred == COUNCIL:
                verdict = await self.run_council(system_instruction, user_prompt)
                return StandardizedResponse(text=verdict.text, usage=Usage(total_token_count=verdict.total_tokens))
            provider = self.build_provider(self._preferred)
            return await provider.generate_content(system_instruction, user_prompt, model)
        except Exception as exc:
            logger.error("AI generation error (%s): %s", self._preferred, exc)
            raise

    async def run_council(
        self,
        system_instruction: str,
        user_prompt: str | list[Part],
    ) -> FinalVerdict:
        """Fan out to every configured provider, then have the judge reconcile.

        Raises:
            AllProvidersFailedError: If no member answered.
            MissingCredentialError: If no judge-capable provider is configured;
                raised before any member is called.
            ProviderError: If the judge call fails.
        """
        members = self.council_members()
        if not members:
            raise AllProvidersFailedError([])
        judge = pick_judge(members)
        council_round = await gather_opinions(list(members.values()), system_instruction, user_prompt)
        return await synthesize(system_instruction, council_round.successes, judge, self._prompts)

    async def generate_chat(
        self,
        system_instruction: str,
        history: list[ChatMessage],
        new_message: str | list[Part],
        model: str | None = None,
    ) -> StandardizedResponse:
        """Continue a conversation with the preferred provider.

        Raises:
            ValueError: In council mode, which has no chat form.
        """
        if self._preferred == COUNCIL:
            raise ValueError("Chat is not supported in council mode; pick a single provider")
        try:
            provider = self.build_provider(self._preferred)
            return await provider.generate_chat(system_instruction, history, new_message, model)
        except Exception as exc:
            logger.error("AI chat error (%s): %s", self._preferred, exc)
            raise
