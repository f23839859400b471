# FILE: app/providers/registry.py
"""
Provider Registry for the AI waterfall.

- Static table of known providers (endpoint, default model, key variable)
- Built ONCE at startup into an immutable, priority-ordered tuple of
  ProviderDescriptor, which is passed explicitly into the orchestrator
- Credentials are read here, not inside adapters at call time

Default priority (fastest first, most capable next):
    Groq -> DeepSeek -> X.AI -> Cohere

Override with SHEETS_AI_PROVIDER_ORDER="deepseek,groq,openai".
A provider without a key stays in the list and fails fast with
"<Name> API key not configured"; that is expected, not a startup error.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

from app.llm.schemas import ProviderStatus
from app.providers.base import ProviderDescriptor
from app.providers.cohere import COHERE_CHAT_URL, CohereAdapter
from app.providers.openai_compat import OpenAICompatibleAdapter

logger = logging.getLogger(__name__)


DEFAULT_PROVIDER_ORDER = "groq,deepseek,xai,cohere"


@dataclass(frozen=True)
class ProviderConfig:
    provider_id: str
    display_name: str
    env_key_name: str
    env_model_name: str
    default_model: str
    base_url: str
    description: str


PROVIDERS: Dict[str, ProviderConfig] = {
    "groq": ProviderConfig(
        "groq", "Groq", "GROQ_API_KEY", "GROQ_MODEL",
        "openai/gpt-oss-120b", "https://api.groq.com/openai/v1",
        "Fastest response time",
    ),
    "deepseek": ProviderConfig(
        "deepseek", "DeepSeek", "DEEPSEEK_API_KEY", "DEEPSEEK_MODEL",
        "deepseek-chat", "https://api.deepseek.com/v1",
        "Best logical reasoning",
    ),
    "xai": ProviderConfig(
        "xai", "X.AI", "XAI_API_KEY", "XAI_MODEL",
        "grok-beta", "https://api.x.ai/v1",
        "Good balance",
    ),
    "cohere": ProviderConfig(
        "cohere", "Cohere", "COHERE_API_KEY", "COHERE_MODEL",
        "command-r-plus", COHERE_CHAT_URL,
        "Fallback option",
    ),
    "openai": ProviderConfig(
        "openai", "OpenAI", "OPENAI_API_KEY", "OPENAI_MODEL",
        "gpt-3.5-turbo", "https://api.openai.com/v1",
        "General-purpose fallback",
    ),
}


def _env(env: Mapping[str, str], key: str) -> str:
    return (env.get(key) or "").strip()


def parse_provider_order(raw: Optional[str]) -> List[str]:
    """Split a comma list into known provider ids, dropping unknowns and repeats."""
    order: List[str] = []
    for part in (raw or DEFAULT_PROVIDER_ORDER).split(","):
        pid = part.strip().lower()
        if not pid:
            continue
        if pid not in PROVIDERS:
            logger.warning("[providers] Unknown provider id in order list: %r (skipped)", pid)
            continue
        if pid in order:
            continue
        order.append(pid)
    return order


def build_descriptor(cfg: ProviderConfig, env: Mapping[str, str]) -> ProviderDescriptor:
    api_key = _env(env, cfg.env_key_name)
    model = _env(env, cfg.env_model_name) or cfg.default_model

    if cfg.provider_id == "cohere":
        adapter = CohereAdapter(api_key=api_key, model=model, name=cfg.display_name, url=cfg.base_url)
    else:
        adapter = OpenAICompatibleAdapter(
            name=cfg.display_name,
            model=model,
            api_key=api_key,
            base_url=cfg.base_url,
        )

    return ProviderDescriptor(
        name=cfg.display_name,
        handler=adapter,
        description=cfg.description,
        env_key_name=cfg.env_key_name,
        model=model,
    )


def build_providers(
    order: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Tuple[ProviderDescriptor, ...]:
    """
    Build the ordered, read-only provider list.

    Args:
        order: Comma list of provider ids; defaults to SHEETS_AI_PROVIDER_ORDER
        env: Mapping to read keys/models from; defaults to os.environ
    """
    env = os.environ if env is None else env
    raw_order = order if order is not None else env.get("SHEETS_AI_PROVIDER_ORDER")
    descriptors = tuple(build_descriptor(PROVIDERS[pid], env) for pid in parse_provider_order(raw_order))

    configured = [d.name for d in descriptors if is_descriptor_configured(d)]
    logger.info(
        "[providers] Waterfall order: %s (configured: %s)",
        " -> ".join(d.name for d in descriptors) or "none",
        ", ".join(configured) or "none",
    )
    return descriptors


def is_descriptor_configured(descriptor: ProviderDescriptor) -> bool:
    return bool(getattr(descriptor.handler, "is_configured", False))


def list_provider_status(descriptors: Tuple[ProviderDescriptor, ...]) -> List[ProviderStatus]:
    return [
        ProviderStatus(
            name=d.name,
            description=d.description,
            model=d.model,
            configured=is_descriptor_configured(d),
        )
        for d in descriptors
    ]


_providers: Optional[Tuple[ProviderDescriptor, ...]] = None


def get_default_providers() -> Tuple[ProviderDescriptor, ...]:
    global _providers
    if _providers is None:
        _providers = build_providers()
    return _providers


def reset_default_providers() -> None:
    """Forget the cached list (tests and config reloads)."""
    global _providers
    _providers = None


__all__ = [
    "DEFAULT_PROVIDER_ORDER",
    "ProviderConfig",
    "PROVIDERS",
    "parse_provider_order",
    "build_descriptor",
    "build_providers",
    "is_descriptor_configured",
    "list_provider_status",
    "get_default_providers",
    "reset_default_providers",
]
