"""Shared pytest fixtures."""

from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from config.config_loader import AppConfig, DefaultsConfig, ModelConfig, PromptsConfig
from tradecouncil.models import (
    ApiConfiguration,
    ChatMessage,
    Part,
    ProviderResponse,
    StandardizedResponse,
    Usage,
)
from tradecouncil.providers.base import AIProvider


def make_model_config(name: str, **overrides) -> ModelConfig:
    values = {
        "name": name,
        "model": f"{name}-test-model",
        "api_key_env": f"TEST_{name.upper()}_KEY",
        "timeout_sec": 30,
        "max_tokens": 4096,
        "chat_max_tokens": 2048,
        "base_url": "https://api.groq.com/openai/v1" if name == "groq" else None,
        "deprecated_models": ["llama-3.2-90b", "llama-3.3-70b"] if name == "groq" else [],
    }
    values.update(overrides)
    return ModelConfig(**values)


def openai_completion(text: str | None, total_tokens: int | None = 10) -> SimpleNamespace:
    """Shape of an openai chat.completions.create() result."""
    usage = SimpleNamespace(total_tokens=total_tokens) if total_tokens is not None else None
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=text))],
        usage=usage,
    )


def gemini_response(
    text: str | None,
    total_tokens: int | None = 10,
    finish_reason: str | None = "STOP",
) -> SimpleNamespace:
    """Shape of a google-genai generate_content() result."""
    candidates = [SimpleNamespace(finish_reason=SimpleNamespace(name=finish_reason))] if finish_reason else []
    usage = SimpleNamespace(total_token_count=total_tokens) if total_tokens is not None else None
    return SimpleNamespace(text=text, candidates=candidates, usage_metadata=usage)


def fake_openai_client(response=None, side_effect=None) -> MagicMock:
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=response, side_effect=side_effect)
    return client


def fake_gemini_client(response=None, side_effect=None) -> MagicMock:
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(return_value=response, side_effect=side_effect)
    chat = MagicMock()
    chat.send_message = AsyncMock(return_value=response, side_effect=side_effect)
    client.aio.chats.create = MagicMock(return_value=chat)
    return client


@pytest.fixture
def model_configs() -> dict[str, ModelConfig]:
    return {name: make_model_config(name) for name in ("gemini", "openai", "groq")}


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        synthesis="Reconcile these opinions. Reject rule violations. Prefer consensus.\n\n{transcript}",
    )


@pytest.fixture
def sample_defaults_config(tmp_path: Path) -> DefaultsConfig:
    return DefaultsConfig(
        preferred_provider="council",
        output_dir=tmp_path / "output",
    )


@pytest.fixture
def sample_app_config(
    sample_defaults_config: DefaultsConfig,
    sample_prompts_config: PromptsConfig,
    model_configs: dict[str, ModelConfig],
) -> AppConfig:
    return AppConfig(
        defaults=sample_defaults_config,
        models=model_configs,
        prompts=sample_prompts_config,
    )


@pytest.fixture
def full_api_config() -> ApiConfiguration:
    return ApiConfiguration(
        gemini_api_key="gm-test",
        openai_api_key="sk-test",
        groq_api_key="gsk-test",
    )


@pytest.fixture
def sample_response() -> ProviderResponse:
    return ProviderResponse(
        provider="gemini",
        model="gemini-1.5-flash",
        text='{"asset": "BTC/USD", "setup": "long above 90450"}',
        token_count=120,
        latency_sec=1.5,
    )


class MockProvider(AIProvider):
    """Test double AIProvider."""

    def __init__(self, provider_name: str = "mock", response_text: str = "Mock response", tokens: int = 10) -> None:
        self._name = provider_name
        self._response_text = response_text
        # Shadow the class methods with AsyncMocks at the instance level.
        # ABC check passes because both are defined in the class body below.
        self.generate_content = AsyncMock(  # type: ignore[assignment]
            return_value=StandardizedResponse(text=response_text, usage=Usage(total_token_count=tokens))
        )
        self.generate_chat = AsyncMock(  # type: ignore[assignment]
            return_value=StandardizedResponse(text=response_text, usage=Usage(total_token_count=tokens))
        )

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return "mock-model"

    async def generate_content(  # type: ignore[override]
        self,
        system_instruction: str,
        user_prompt: str | list[Part],
        model: str | None = None,
    ) -> StandardizedResponse:
        """Default implementation; replaced by AsyncMock in __init__."""
        return StandardizedResponse(text=self._response_text)

    async def generate_chat(  # type: ignore[override]
        self,
        system_instruction: str,
        history: list[ChatMessage],
        new_message: str | list[Part],
        model: str | None = None,
    ) -> StandardizedResponse:
        """Default implementation; replaced by AsyncMock in __init__."""
        return StandardizedResponse(text=self._response_text)


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()


@pytest.fixture
def three_mock_providers() -> list[MockProvider]:
    return [
        MockProvider("gemini", "Gemini sees a long", 120),
        MockProvider("openai", "OpenAI sees a long", 95),
        MockProvider("groq", "Groq sees a short", 80),
    ]
