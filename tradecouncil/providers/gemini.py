"""Gemini provider using google-genai SDK with native async."""

import asyncio
import logging
import time
from typing import Any

from google import genai
from google.genai import types as genai_types

from config.config_loader import ModelConfig
from tradecouncil.models import ChatMessage, Part, StandardizedResponse, Usage
from tradecouncil.parts import as_parts, parts_to_gemini
from tradecouncil.providers.base import AIProvider, MissingCredentialError, ProviderError, translate_error

logger = logging.getLogger(__name__)


class GeminiProvider(AIProvider):
    """Google Gemini provider via google-genai SDK."""

    def __init__(self, config: ModelConfig, api_key: str | None, client: Any = None) -> None:
        self._config = config
        if client is None:
            api_key = (api_key or "").strip()
            if not api_key:
                raise MissingCredentialError(config.name)
            client = genai.Client(api_key=api_key)
        self._client = client

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    async def generate_content(
        self,
        system_instruction: str,
        user_prompt: str | list[Part],
        model: str | None = None,
    ) -> StandardizedResponse:
        model_name = model or self._config.model
        contents = [genai_types.Content(role="user", parts=self._native_parts(user_prompt))]
        request = self._client.aio.models.generate_content(
            model=model_name,
            contents=contents,
            config=genai_types.GenerateContentConfig(
                system_instruction=system_instruction,
                max_output_tokens=self._config.max_tokens,
            ),
        )
        return await self._complete(request, model_name, "generate")

    async def generate_chat(
        self,
        system_instruction: str,
        history: list[ChatMessage],
        new_message: str | list[Part],
        model: str | None = None,
    ) -> StandardizedResponse:
        model_name = model or self._config.model
        gemini_history = [
            genai_types.Content(
                role="model" if msg.role == "assistant" else "user",
                parts=self._native_parts(msg.content),
            )
            for msg in history
        ]
        chat = self._client.aio.chats.create(
            model=model_name,
            config=genai_types.GenerateContentConfig(
                system_instruction=system_instruction,
                max_output_tokens=self._config.chat_max_tokens,
            ),
            history=gemini_history,
        )
        request = chat.send_message(self._native_parts(new_message))
        return await self._complete(request, model_name, "chat")

    def _native_parts(self, prompt: str | list[Part]) -> list[genai_types.Part]:
        try:
            return parts_to_gemini(as_parts(prompt))
        except ValueError as exc:
            raise ProviderError(self._config.name, "Invalid inline image data") from exc

    async def _complete(self, request: Any, model_name: str, kind: str) -> StandardizedResponse:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(request, timeout=self._config.timeout_sec)
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise translate_error(self._config.name, exc) from exc

        latency = time.monotonic() - start

        text = response.text or ""
        if not text and response.candidates:
            reason = response.candidates[0].finish_reason
            reason_name = getattr(reason, "name", None) or (str(reason) if reason else "")
            if reason_name and reason_name != "STOP":
                text = f"AI_GENERATION_FAILED: {reason_name}"

        token_count = 0
        if response.usage_metadata and response.usage_metadata.total_token_count:
            token_count = response.usage_metadata.total_token_count

        logger.info("Gemini %s (%s): %.2fs, %d tokens", kind, model_name, latency, token_count)

        return StandardizedResponse(text=text, usage=Usage(total_token_count=token_count))
