# FILE: app/providers/cohere.py
"""
Cohere chat adapter (https://docs.cohere.com/reference/chat).

Cohere's v1 chat API is not OpenAI-compatible (preamble + message, reply in
"text"), so it is called directly over httpx.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from app.llm.schemas import AIResponse, SpreadsheetSchema
from app.providers.base import (
    DEFAULT_TEMPERATURE,
    SYSTEM_PROMPT,
    build_user_prompt,
    not_configured,
    parse_completion,
)

logger = logging.getLogger(__name__)

COHERE_CHAT_URL = "https://api.cohere.ai/v1/chat"


class CohereAdapter:
    def __init__(
        self,
        api_key: Optional[str],
        model: str = "command-r-plus",
        name: str = "Cohere",
        url: str = COHERE_CHAT_URL,
        temperature: float = DEFAULT_TEMPERATURE,
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.name = name
        self.model = model
        self._api_key = (api_key or "").strip()
        self._url = url
        self._temperature = temperature
        self._timeout_seconds = timeout_seconds
        self._transport = transport  # tests inject httpx.MockTransport

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def request(self, query: str, schema: SpreadsheetSchema) -> AIResponse:
        if not self.is_configured:
            return not_configured(self.name)

        payload = {
            "model": self.model,
            "message": build_user_prompt(query, schema),
            "preamble": SYSTEM_PROMPT,
            "temperature": self._temperature,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

        timeout = httpx.Timeout(self._timeout_seconds)
        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            resp = await client.post(self._url, json=payload, headers=headers)

        if resp.status_code >= 400:
            logger.info("[providers] %s returned HTTP %s", self.name, resp.status_code)
            return AIResponse.failure(f"{self.name} API error: {resp.status_code} - {resp.text[:300]}")

        # A non-JSON body on a 2xx is a transport-level fault; let it raise.
        data = resp.json()
        content = data.get("text") if isinstance(data, dict) else None
        if not content or not str(content).strip():
            return AIResponse.failure(f"No content in {self.name} response")

        return parse_completion(str(content), self.name)

    async def __call__(self, query: str, schema: SpreadsheetSchema) -> AIResponse:
        return await self.request(query, schema)


__all__ = ["CohereAdapter", "COHERE_CHAT_URL"]
