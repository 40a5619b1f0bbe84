"""Abstract base and error types for all AI model providers."""

from abc import ABC, abstractmethod

from tradecouncil.models import ChatMessage, Part, StandardizedResponse

_RATE_LIMIT_MARKERS = ("429", "quota", "exhausted", "limit")


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


class MissingCredentialError(ProviderError):
    """Raised before any network call when a provider has no usable API key."""

    def __init__(self, provider_name: str, message: str | None = None) -> None:
        super().__init__(provider_name, message or f"{provider_name.title()} API key not found")


class RateLimitError(ProviderError):
    """Raised when the backend reports rate limiting or an exhausted quota."""

    def __init__(self, provider_name: str) -> None:
        super().__init__(
            provider_name,
            f"Rate Limit Exceeded for {provider_name.upper()}. Please wait or switch providers.",
        )


def translate_error(provider_name: str, exc: Exception) -> ProviderError:
    """Wrap a backend exception, promoting rate-limit failures to RateLimitError."""
    message = str(exc) or repr(exc)
    lowered = message.lower()
    if any(marker in lowered for marker in _RATE_LIMIT_MARKERS):
        return RateLimitError(provider_name)
    return ProviderError(provider_name, f"API call failed: {message}")


class AIProvider(ABC):
    """Abstract base for all AI model providers."""

    @abstractmethod
    def name(self) -> str:
        """Return the short provider name (e.g. 'gemini', 'groq')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the default model identifier string."""
        ...

    @abstractmethod
    async def generate_content(
        self,
        system_instruction: str,
        user_prompt: str | list[Part],
        model: str | None = None,
    ) -> StandardizedResponse:
        """Run a single-turn generation.

        Args:
            system_instruction: Persona and strategy rules.
            user_prompt: Plain text, or text and inline image parts.
            model: Optional override of the configured model.

        Returns:
            StandardizedResponse; text is "" when the backend returned nothing.

        Raises:
            ProviderError: On API failure, timeout, or malformed response.
        """
        ...

    @abstractmethod
    async def generate_chat(
        self,
        system_instruction: str,
        history: list[ChatMessage],
        new_message: str | list[Part],
        model: str | None = None,
    ) -> StandardizedResponse:
        """Continue a conversation with prior user/assistant turns."""
        ...
