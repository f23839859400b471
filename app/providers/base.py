# FILE: app/providers/base.py
"""
Provider adapter contract + shared prompt/reply handling.

Every adapter is an async callable:

    async def request(query: str, schema: SpreadsheetSchema) -> AIResponse

Contract:
- Expected failures (missing key, HTTP error status, empty reply) are RETURNED
  as AIResponse.failure(...). They are normal outcomes, not exceptions.
- Transport problems (connection reset, SDK timeout) MAY raise; the waterfall
  folds them into a failed attempt.
- The request payload contains the schema and the query. Never row data.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from app.llm.schemas import AIResponse, ResponseType, SpreadsheetSchema

logger = logging.getLogger(__name__)


ProviderHandler = Callable[[str, SpreadsheetSchema], Awaitable[AIResponse]]

DEFAULT_TEMPERATURE = 0.3
DEFAULT_MAX_TOKENS = 1000


@dataclass(frozen=True)
class ProviderDescriptor:
    """Static entry in the waterfall: who to call and why it sits where it does."""
    name: str
    handler: ProviderHandler
    description: str
    env_key_name: str = ""
    model: str = ""


SYSTEM_PROMPT = """You are an Excel formula and data transformation expert.
You will receive a spreadsheet schema (column headers and types) and a user's natural language request.
Your job is to output ONLY valid Excel formulas or JavaScript transformation code.

CRITICAL SECURITY RULE: You will NEVER see actual row data. Only the schema.

Return a JSON response with:
{
  "type": "formula" or "transformation",
  "code": "the formula or JavaScript code",
  "explanation": "brief explanation"
}"""


def build_user_prompt(query: str, schema: SpreadsheetSchema) -> str:
    return (
        f"Schema: {json.dumps(schema.to_prompt_dict())}\n"
        f"User Request: {query}\n\n"
        "Generate the appropriate formula or transformation code."
    )


def build_chat_messages(query: str, schema: SpreadsheetSchema) -> list[dict]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": build_user_prompt(query, schema)},
    ]


def not_configured(provider_name: str) -> AIResponse:
    return AIResponse.failure(f"{provider_name} API key not configured")


# =============================================================================
# REPLY PARSING
# =============================================================================

_JSON_FENCE = re.compile(r"```(?:json)?[ \t]*\n(.*?)\n?```", re.DOTALL)
_CODE_FENCE = re.compile(
    r"```(?:(?:excel|formula|javascript|js|json)(?![A-Za-z0-9]))?[ \t]*\n?(.*?)\n?```",
    re.DOTALL,
)


def _coerce_type(value: Any) -> ResponseType:
    if value == ResponseType.TRANSFORMATION.value:
        return ResponseType.TRANSFORMATION
    return ResponseType.FORMULA


def _load_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        parsed = json.loads(text)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _try_json(content: str) -> Optional[Dict[str, Any]]:
    parsed = _load_object(content.strip())
    if parsed is not None:
        return parsed
    # prose before or after the block is common
    m = _JSON_FENCE.search(content)
    if m:
        return _load_object(m.group(1).strip())
    return None


def parse_completion(content: str, provider_name: str) -> AIResponse:
    """
    Normalize a provider's raw text reply into a successful AIResponse.

    JSON object -> {type, code, explanation}
    otherwise   -> fenced code block as code, remaining text as explanation
    otherwise   -> whole text as explanation, empty code, type=formula
    """
    parsed = _try_json(content)
    if parsed is not None:
        return AIResponse(
            success=True,
            type=_coerce_type(parsed.get("type")),
            code=str(parsed.get("code") or ""),
            explanation=str(parsed.get("explanation") or "No explanation provided"),
            provider=provider_name,
        )

    logger.debug("[providers] %s reply was not JSON; using text fallback", provider_name)

    m = _CODE_FENCE.search(content)
    if m:
        return AIResponse(
            success=True,
            type=ResponseType.FORMULA,
            code=m.group(1).strip(),
            explanation=_CODE_FENCE.sub("", content, count=1).strip(),
            provider=provider_name,
        )

    return AIResponse(
        success=True,
        type=ResponseType.FORMULA,
        code="",
        explanation=content.strip(),
        provider=provider_name,
    )


__all__ = [
    "ProviderHandler",
    "ProviderDescriptor",
    "SYSTEM_PROMPT",
    "DEFAULT_TEMPERATURE",
    "DEFAULT_MAX_TOKENS",
    "build_user_prompt",
    "build_chat_messages",
    "not_configured",
    "parse_completion",
]
