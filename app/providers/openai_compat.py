# FILE: app/providers/openai_compat.py
"""
Adapter for OpenAI-compatible chat-completions services.

Groq, DeepSeek, X.AI and OpenAI all speak the same /chat/completions dialect,
so one adapter class serves all of them; only base_url, model and key differ.

SDK retries are disabled (max_retries=0): a failing provider is never retried
in place, the waterfall moves on instead.
"""

from __future__ import annotations

import logging
from typing import Optional

from openai import APIStatusError, AsyncOpenAI

from app.llm.schemas import AIResponse, SpreadsheetSchema
from app.providers.base import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    build_chat_messages,
    not_configured,
    parse_completion,
)

logger = logging.getLogger(__name__)


class OpenAICompatibleAdapter:
    def __init__(
        self,
        name: str,
        model: str,
        api_key: Optional[str],
        base_url: Optional[str] = None,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout_seconds: float = 30.0,
    ):
        self.name = name
        self.model = model
        self._api_key = (api_key or "").strip()
        self._base_url = base_url
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout_seconds = timeout_seconds

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    def _client(self) -> AsyncOpenAI:
        return AsyncOpenAI(
            api_key=self._api_key,
            base_url=self._base_url,
            timeout=self._timeout_seconds,
            max_retries=0,
        )

    async def request(self, query: str, schema: SpreadsheetSchema) -> AIResponse:
        if not self.is_configured:
            return not_configured(self.name)

        client = self._client()
        try:
            resp = await client.chat.completions.create(
                model=self.model,
                messages=build_chat_messages(query, schema),
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except APIStatusError as e:
            logger.info("[providers] %s returned HTTP %s", self.name, e.status_code)
            return AIResponse.failure(f"{self.name} API error: {e.status_code} - {e.message}")
        finally:
            await client.close()

        content = ""
        if resp.choices:
            content = resp.choices[0].message.content or ""
        if not content.strip():
            return AIResponse.failure(f"No content in {self.name} response")

        return parse_completion(content, self.name)

    async def __call__(self, query: str, schema: SpreadsheetSchema) -> AIResponse:
        return await self.request(query, schema)


__all__ = ["OpenAICompatibleAdapter"]
