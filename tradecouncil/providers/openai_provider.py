"""OpenAI provider using openai SDK with native async."""

import asyncio
import logging
import time
from typing import Any

from openai import AsyncOpenAI

from config.config_loader import ModelConfig
from tradecouncil.models import ChatMessage, Part, StandardizedResponse, Usage
from tradecouncil.parts import parts_to_openai
from tradecouncil.providers.base import AIProvider, MissingCredentialError, ProviderError, translate_error

logger = logging.getLogger(__name__)


def _message(role: str, content: str | list[Part]) -> dict[str, Any]:
    if isinstance(content, str):
        return {"role": role, "content": content}
    return {"role": role, "content": parts_to_openai(content)}


class OpenAIProvider(AIProvider):
    """OpenAI provider via openai SDK."""

    def __init__(self, config: ModelConfig, api_key: str | None, client: Any = None) -> None:
        self._config = config
        if client is None:
            api_key = (api_key or "").strip()
            if not api_key:
                raise MissingCredentialError(config.name)
            client = self._build_client(api_key)
        self._client = client

    def _build_client(self, api_key: str) -> AsyncOpenAI:
        return AsyncOpenAI(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    def _resolve_model(self, model: str | None) -> str:
        return model or self._config.model

    async def generate_content(
        self,
        system_instruction: str,
        user_prompt: str | list[Part],
        model: str | None = None,
    ) -> StandardizedResponse:
        messages = [
            {"role": "system", "content": system_instruction},
            _message("user", user_prompt),
        ]
        return await self._complete(messages, self._resolve_model(model), self._config.max_tokens, "generate")

    async def generate_chat(
        self,
        system_instruction: str,
        history: list[ChatMessage],
        new_message: str | list[Part],
        model: str | None = None,
    ) -> StandardizedResponse:
        messages = [{"role": "system", "content": system_instruction}]
        messages.extend(_message(msg.role, msg.content) for msg in history)
        messages.append(_message("user", new_message))
        return await self._complete(messages, self._resolve_model(model), self._config.chat_max_tokens, "chat")

    async def _complete(
        self,
        messages: list[dict[str, Any]],
        model_name: str,
        max_tokens: int,
        kind: str,
    ) -> StandardizedResponse:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=model_name,
                    messages=messages,
                    max_tokens=max_tokens,
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise translate_error(self._config.name, exc) from exc

        latency = time.monotonic() - start

        if not response.choices:
            raise ProviderError(self._config.name, "Response contained no choices")

        text = response.choices[0].message.content or ""

        token_count = 0
        if response.usage and response.usage.total_tokens:
            token_count = response.usage.total_tokens

        logger.info("%s %s (%s): %.2fs, %d tokens", self._config.name, kind, model_name, latency, token_count)

        return StandardizedResponse(text=text, usage=Usage(total_token_count=token_count))
