"""Unit tests for the provider adapters: injected fake clients, no real API calls."""

import asyncio

import pytest

from tradecouncil.models import ChatMessage, InlineDataPart, TextPart
from tradecouncil.providers.base import MissingCredentialError, ProviderError, RateLimitError, translate_error
from tradecouncil.providers.gemini import GeminiProvider
from tradecouncil.providers.groq import GroqProvider
from tradecouncil.providers.openai_provider import OpenAIProvider
from tests.conftest import (
    fake_gemini_client,
    fake_openai_client,
    gemini_response,
    make_model_config,
    openai_completion,
)

_SYSTEM = "Only take longs above the 200 EMA."


# --- credentials ---

@pytest.mark.parametrize("cls,name", [(GeminiProvider, "gemini"), (OpenAIProvider, "openai"), (GroqProvider, "groq")])
def test_missing_key_raises_before_any_call(cls, name):
    with pytest.raises(MissingCredentialError, match="API key not found"):
        cls(make_model_config(name), api_key="   ")


def test_groq_requires_base_url():
    with pytest.raises(ProviderError, match="base_url"):
        GroqProvider(make_model_config("groq", base_url=None), api_key="gsk-test")


def test_missing_credential_is_provider_error():
    assert issubclass(MissingCredentialError, ProviderError)


# --- error translation ---

@pytest.mark.parametrize("message", ["Error 429 Too Many Requests", "Quota exceeded", "RESOURCE_EXHAUSTED"])
def test_translate_error_rate_limit(message):
    err = translate_error("gemini", Exception(message))
    assert isinstance(err, RateLimitError)
    assert "Rate Limit Exceeded for GEMINI" in str(err)


def test_translate_error_generic():
    err = translate_error("openai", Exception("500 Internal Server Error"))
    assert type(err) is ProviderError
    assert "API call failed" in str(err)
    assert err.provider_name == "openai"


# --- OpenAI ---

async def test_openai_text_prompt():
    client = fake_openai_client(openai_completion("Long BTC at 90450", total_tokens=95))
    provider = OpenAIProvider(make_model_config("openai"), api_key=None, client=client)

    result = await provider.generate_content(_SYSTEM, "BTC 4h data")

    assert result.text == "Long BTC at 90450"
    assert result.usage.total_token_count == 95
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "openai-test-model"
    assert kwargs["max_tokens"] == 4096
    assert kwargs["messages"] == [
        {"role": "system", "content": _SYSTEM},
        {"role": "user", "content": "BTC 4h data"},
    ]


async def test_openai_parts_converted_to_image_url():
    client = fake_openai_client(openai_completion("ok"))
    provider = OpenAIProvider(make_model_config("openai"), api_key=None, client=client)

    await provider.generate_content(
        _SYSTEM,
        [TextPart(text="chart"), InlineDataPart(mime_type="image/png", data="AAAA")],
        model="gpt-4o-mini",
    )

    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    user_content = kwargs["messages"][1]["content"]
    assert user_content[1] == {"type": "image_url", "image_url": {"url": "data:image/png;base64,AAAA"}}


async def test_openai_empty_content_is_empty_string():
    client = fake_openai_client(openai_completion(None, total_tokens=None))
    provider = OpenAIProvider(make_model_config("openai"), api_key=None, client=client)

    result = await provider.generate_content(_SYSTEM, "hi")

    assert result.text == ""
    assert result.usage.total_token_count == 0


async def test_openai_no_choices_is_provider_error():
    client = fake_openai_client(openai_completion("x"))
    client.chat.completions.create.return_value.choices = []
    provider = OpenAIProvider(make_model_config("openai"), api_key=None, client=client)

    with pytest.raises(ProviderError, match="no choices"):
        await provider.generate_content(_SYSTEM, "hi")


async def test_openai_api_error_wrapped():
    client = fake_openai_client(side_effect=RuntimeError("connection reset"))
    provider = OpenAIProvider(make_model_config("openai"), api_key=None, client=client)

    with pytest.raises(ProviderError, match="connection reset") as exc_info:
        await provider.generate_content(_SYSTEM, "hi")
    assert isinstance(exc_info.value.__cause__, RuntimeError)


async def test_openai_timeout():
    async def hang(*args, **kwargs):
        await asyncio.sleep(9999)

    client = fake_openai_client(side_effect=hang)
    provider = OpenAIProvider(make_model_config("openai", timeout_sec=0.05), api_key=None, client=client)

    with pytest.raises(ProviderError, match="timed out"):
        await provider.generate_content(_SYSTEM, "hi")


async def test_openai_chat_history_and_chat_tokens():
    client = fake_openai_client(openai_completion("Still valid"))
    provider = OpenAIProvider(make_model_config("openai"), api_key=None, client=client)
    history = [
        ChatMessage(role="user", content="Is this a long?"),
        ChatMessage(role="assistant", content="Yes, above 90450."),
    ]

    result = await provider.generate_chat(_SYSTEM, history, [TextPart(text="And now?")])

    assert result.text == "Still valid"
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["max_tokens"] == 2048
    roles = [m["role"] for m in kwargs["messages"]]
    assert roles == ["system", "user", "assistant", "user"]
    assert kwargs["messages"][-1]["content"] == [{"type": "text", "text": "And now?"}]


# --- Groq ---

async def test_groq_default_model():
    client = fake_openai_client(openai_completion("ok"))
    provider = GroqProvider(make_model_config("groq"), api_key=None, client=client)

    await provider.generate_content(_SYSTEM, "hi")

    assert client.chat.completions.create.call_args.kwargs["model"] == "groq-test-model"


async def test_groq_swaps_deprecated_model(caplog):
    client = fake_openai_client(openai_completion("ok"))
    provider = GroqProvider(make_model_config("groq"), api_key=None, client=client)

    await provider.generate_content(_SYSTEM, "hi", model="llama-3.2-90b-vision-preview")

    assert client.chat.completions.create.call_args.kwargs["model"] == "groq-test-model"
    assert "Deprecated model" in caplog.text


async def test_groq_keeps_supported_override():
    client = fake_openai_client(openai_completion("ok"))
    provider = GroqProvider(make_model_config("groq"), api_key=None, client=client)

    await provider.generate_content(_SYSTEM, "hi", model="llama-3.1-8b-instant")

    assert client.chat.completions.create.call_args.kwargs["model"] == "llama-3.1-8b-instant"


async def test_groq_rate_limit():
    client = fake_openai_client(side_effect=Exception("Error code: 429 - rate_limit_exceeded"))
    provider = GroqProvider(make_model_config("groq"), api_key=None, client=client)

    with pytest.raises(RateLimitError, match="GROQ"):
        await provider.generate_content(_SYSTEM, "hi")


# --- Gemini ---

async def test_gemini_generate_passes_system_instruction():
    client = fake_gemini_client(gemini_response("Short NVDA", total_tokens=120))
    provider = GeminiProvider(make_model_config("gemini"), api_key=None, client=client)

    result = await provider.generate_content(_SYSTEM, [TextPart(text="chart"), InlineDataPart("image/png", "AAAA")])

    assert result.text == "Short NVDA"
    assert result.usage.total_token_count == 120
    kwargs = client.aio.models.generate_content.call_args.kwargs
    assert kwargs["model"] == "gemini-test-model"
    assert kwargs["config"].system_instruction == _SYSTEM
    assert kwargs["config"].max_output_tokens == 4096
    content = kwargs["contents"][0]
    assert content.role == "user"
    assert content.parts[0].text == "chart"
    assert content.parts[1].inline_data.mime_type == "image/png"


async def test_gemini_blocked_response_reports_finish_reason():
    client = fake_gemini_client(gemini_response(None, total_tokens=None, finish_reason="SAFETY"))
    provider = GeminiProvider(make_model_config("gemini"), api_key=None, client=client)

    result = await provider.generate_content(_SYSTEM, "hi")

    assert result.text == "AI_GENERATION_FAILED: SAFETY"
    assert result.usage.total_token_count == 0


async def test_gemini_empty_stop_is_empty_string():
    client = fake_gemini_client(gemini_response(None, finish_reason="STOP"))
    provider = GeminiProvider(make_model_config("gemini"), api_key=None, client=client)

    result = await provider.generate_content(_SYSTEM, "hi")

    assert result.text == ""


async def test_gemini_api_error_wrapped():
    client = fake_gemini_client(side_effect=Exception("400 INVALID_ARGUMENT"))
    provider = GeminiProvider(make_model_config("gemini"), api_key=None, client=client)

    with pytest.raises(ProviderError, match="INVALID_ARGUMENT"):
        await provider.generate_content(_SYSTEM, "hi")


async def test_gemini_chat_maps_assistant_to_model():
    client = fake_gemini_client(gemini_response("Hold the trade"))
    provider = GeminiProvider(make_model_config("gemini"), api_key=None, client=client)
    history = [
        ChatMessage(role="user", content="Entry at 90450?"),
        ChatMessage(role="assistant", content="Yes."),
    ]

    result = await provider.generate_chat(_SYSTEM, history, "Stop loss?")

    assert result.text == "Hold the trade"
    create_kwargs = client.aio.chats.create.call_args.kwargs
    assert [c.role for c in create_kwargs["history"]] == ["user", "model"]
    assert create_kwargs["config"].max_output_tokens == 2048
    sent = client.aio.chats.create.return_value.send_message.call_args.args[0]
    assert sent[0].text == "Stop loss?"


async def test_gemini_malformed_inline_data_is_provider_error():
    client = fake_gemini_client(gemini_response("unused"))
    provider = GeminiProvider(make_model_config("gemini"), api_key=None, client=client)

    with pytest.raises(ProviderError, match="Invalid inline image data"):
        await provider.generate_content(_SYSTEM, [TextPart(text="x"), InlineDataPart("image/png", "abc")])
    client.aio.models.generate_content.assert_not_called()
