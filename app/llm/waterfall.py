# FILE: app/llm/waterfall.py
"""
AI Waterfall for the spreadsheet assistant.

Tries a statically ordered list of providers ONE AT A TIME for a single
request and stops at the first success. Sequential on purpose: once one
provider answers, the rest must not spend quota.

PRIVACY PRECONDITION (checked before any network call):
- schema.headers must be non-empty
- schema.sample_data, if present, must hold at most ONE row of type tags
Violation -> "Security violation: ..." response, zero provider calls.

PER-ATTEMPT POLICY:
- Each attempt is raced against a timeout (SHEETS_AI_TIMEOUT_SECONDS, default 15)
- Returned failure, raised exception and timeout all become one AttemptOutcome
- ANY failure advances to the next provider; nothing is retried in place
- Failure classification (rate limit / timeout / unavailable / ...) only picks
  the log level and tags the AttemptRecord. It never changes control flow.

EXHAUSTION:
    "All AI providers failed. Groq: <err> | DeepSeek: <err> | ..."

Usage:
    from app.llm.waterfall import WaterfallOrchestrator
    from app.providers.registry import get_default_providers

    orchestrator = WaterfallOrchestrator(get_default_providers())
    response = await orchestrator.run("sum column A", schema)
"""

from __future__ import annotations

import asyncio
import logging
import math
import os
import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence

from app.llm.schemas import AIResponse, SpreadsheetSchema
from app.providers.base import ProviderDescriptor

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

_FALLBACK_TIMEOUT_SECONDS = 15.0


def timeout_from_env(raw: Optional[str]) -> float:
    """Parse SHEETS_AI_TIMEOUT_SECONDS; unset, malformed or non-positive -> 15s."""
    if raw is None or not raw.strip():
        return _FALLBACK_TIMEOUT_SECONDS
    try:
        value = float(raw)
    except ValueError:
        logger.warning(
            "[waterfall] Ignoring SHEETS_AI_TIMEOUT_SECONDS=%r, using %.0fs",
            raw, _FALLBACK_TIMEOUT_SECONDS,
        )
        return _FALLBACK_TIMEOUT_SECONDS
    if not math.isfinite(value) or value <= 0:
        logger.warning(
            "[waterfall] SHEETS_AI_TIMEOUT_SECONDS must be positive, got %r; using %.0fs",
            raw, _FALLBACK_TIMEOUT_SECONDS,
        )
        return _FALLBACK_TIMEOUT_SECONDS
    return value


DEFAULT_TIMEOUT_SECONDS = timeout_from_env(os.getenv("SHEETS_AI_TIMEOUT_SECONDS"))

FAILURE_PREFIX = "All AI providers failed."


# =============================================================================
# FAILURE CLASSIFICATION (diagnostics only)
# =============================================================================

class FailureType(str, Enum):
    NOT_CONFIGURED = "NOT_CONFIGURED"
    RATE_LIMITED = "RATE_LIMITED"
    TIMEOUT = "TIMEOUT"
    UNAVAILABLE = "UNAVAILABLE"
    ERROR = "ERROR"


_LOG_LEVELS: Dict[FailureType, str] = {
    FailureType.NOT_CONFIGURED: "info",
    FailureType.RATE_LIMITED: "warning",
    FailureType.TIMEOUT: "warning",
    FailureType.UNAVAILABLE: "warning",
    FailureType.ERROR: "error",
}

_UNAVAILABLE_MARKERS = ("unavailable", "quota", "500", "502", "503", "504")


def classify_failure(message: str) -> FailureType:
    """Bucket a free-text provider error by keyword."""
    text = (message or "").lower()
    if "not configured" in text:
        return FailureType.NOT_CONFIGURED
    if "rate limit" in text or "429" in text:
        return FailureType.RATE_LIMITED
    if "timeout" in text or "timed out" in text:
        return FailureType.TIMEOUT
    if any(marker in text for marker in _UNAVAILABLE_MARKERS):
        return FailureType.UNAVAILABLE
    return FailureType.ERROR


# =============================================================================
# ATTEMPT BOOKKEEPING
# =============================================================================

@dataclass(frozen=True)
class AttemptOutcome:
    """Single shape for every way an attempt can end."""
    duration_ms: int
    response: Optional[AIResponse] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.response is not None and self.response.success


@dataclass(frozen=True)
class AttemptRecord:
    provider: str
    error: str
    duration_ms: int
    failure_type: FailureType = FailureType.ERROR


def build_failure_message(attempts: Sequence[AttemptRecord]) -> str:
    if not attempts:
        return f"{FAILURE_PREFIX} No providers configured"
    summary = " | ".join(f"{a.provider}: {a.error}" for a in attempts)
    return f"{FAILURE_PREFIX} {summary}"


# =============================================================================
# SECURITY PRECONDITION
# =============================================================================

def schema_violation(schema: SpreadsheetSchema) -> Optional[str]:
    """Return a violation message, or None if the schema may leave the process."""
    if not schema.headers:
        logger.error("[Security] Schema missing headers")
        return "Security violation: Schema is missing headers"

    if schema.sample_data is not None and len(schema.sample_data) > 1:
        logger.error(
            "[Security] Schema contains %d rows of sample data (max 1)", len(schema.sample_data)
        )
        return "Security violation: Schema contains actual data rows"

    return None


def validate_schema_only(schema: SpreadsheetSchema) -> bool:
    return schema_violation(schema) is None


# =============================================================================
# ORCHESTRATOR
# =============================================================================

class WaterfallOrchestrator:
    """
    Sequential first-success-wins runner over a fixed provider list.

    Holds no per-request state, so one instance can serve concurrent requests.
    """

    def __init__(
        self,
        providers: Sequence[ProviderDescriptor],
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.providers = tuple(providers)
        self.timeout_seconds = timeout_seconds

    async def _attempt(
        self,
        provider: ProviderDescriptor,
        query: str,
        schema: SpreadsheetSchema,
    ) -> AttemptOutcome:
        start = time.monotonic()

        def elapsed() -> int:
            return int((time.monotonic() - start) * 1000)

        try:
            task = asyncio.ensure_future(provider.handler(query, schema))
        except Exception as e:
            logger.warning("[waterfall] %s raised %s: %s", provider.name, type(e).__name__, e)
            return AttemptOutcome(duration_ms=elapsed(), error=str(e) or type(e).__name__)

        # The deadline is ours; a TimeoutError raised by the handler is an ordinary failure
        try:
            done, _ = await asyncio.wait({task}, timeout=self.timeout_seconds)
        except asyncio.CancelledError:
            task.cancel()
            raise

        if task not in done:
            # cancelled, so a late reply is dropped
            task.cancel()
            timeout_ms = int(self.timeout_seconds * 1000)
            return AttemptOutcome(
                duration_ms=elapsed(),
                error=f"{provider.name} request timeout after {timeout_ms}ms",
            )

        try:
            response = task.result()
        except Exception as e:
            logger.warning("[waterfall] %s raised %s: %s", provider.name, type(e).__name__, e)
            return AttemptOutcome(duration_ms=elapsed(), error=str(e) or type(e).__name__)

        if not isinstance(response, AIResponse):
            return AttemptOutcome(
                duration_ms=elapsed(),
                error=f"Invalid response type from {provider.name}: {type(response).__name__}",
            )
        if not response.success:
            return AttemptOutcome(
                duration_ms=elapsed(),
                response=response,
                error=response.error or "Unknown error",
            )
        return AttemptOutcome(duration_ms=elapsed(), response=response)

    async def run(self, query: str, schema: SpreadsheetSchema) -> AIResponse:
        violation = schema_violation(schema)
        if violation:
            return AIResponse.failure(violation)

        attempts: List[AttemptRecord] = []

        for provider in self.providers:
            logger.info("[waterfall] Trying %s (%s)...", provider.name, provider.description)

            outcome = await self._attempt(provider, query, schema)

            if outcome.succeeded:
                logger.info("[waterfall] Success with %s in %dms", provider.name, outcome.duration_ms)
                return outcome.response.with_provider(provider.name)

            error = outcome.error or "Unknown error"
            failure_type = classify_failure(error)
            attempts.append(
                AttemptRecord(
                    provider=provider.name,
                    error=error,
                    duration_ms=outcome.duration_ms,
                    failure_type=failure_type,
                )
            )

            log_fn = getattr(logger, _LOG_LEVELS[failure_type], logger.warning)
            log_fn(
                "[waterfall] %s failed (%s): %s (%dms)",
                provider.name, failure_type.value, error, outcome.duration_ms,
            )

        total_ms = sum(a.duration_ms for a in attempts)
        logger.error(
            "[waterfall] All providers exhausted after %dms: %s",
            total_ms,
            [(a.provider, a.failure_type.value) for a in attempts],
        )
        return AIResponse.failure(build_failure_message(attempts))


__all__ = [
    "DEFAULT_TIMEOUT_SECONDS",
    "timeout_from_env",
    "FAILURE_PREFIX",
    "FailureType",
    "classify_failure",
    "AttemptOutcome",
    "AttemptRecord",
    "build_failure_message",
    "schema_violation",
    "validate_schema_only",
    "WaterfallOrchestrator",
]
