# FILE: app/llm/router.py
"""
FastAPI router for the spreadsheet AI assistant.

Endpoints:
- POST /api/ai            natural-language request -> formula/transformation
- GET  /api/ai/providers  waterfall order + which providers have keys

POST /api/ai never lets an exception escape:
- bad/missing input           -> 400 {success:false, type:"error", error}
- orchestrator result         -> 200 (even when every provider failed)
- anything unexpected         -> 500 {success:false, type:"error", error}

Only the FIRST row's type tags and the row count leave this module; the rows
themselves are never forwarded.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.llm.schema_extractor import extract_schema
from app.llm.schemas import AIRequest, AIResponse, ProviderStatus
from app.llm.waterfall import WaterfallOrchestrator
from app.providers.registry import get_default_providers, list_provider_status

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["AI Assistant"])

MISSING_PARAMS_ERROR = "Missing required parameters: query and headers are required"

_orchestrator: Optional[WaterfallOrchestrator] = None


def get_orchestrator() -> WaterfallOrchestrator:
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = WaterfallOrchestrator(get_default_providers())
    return _orchestrator


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=AIResponse.failure(message).to_wire())


def _pick_sample_row(req: AIRequest) -> Optional[List[Any]]:
    if req.rows:
        return req.rows[0]
    return req.firstRow


@router.post("")
async def ai_request(
    request: Request,
    orchestrator: WaterfallOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    try:
        try:
            req = AIRequest.model_validate(await request.json())
        except (ValueError, ValidationError) as e:
            # json.JSONDecodeError and pydantic errors both land here
            logger.info("[ai-route] Rejected malformed body: %s", e)
            return _error(f"Invalid request body: {e}", status.HTTP_400_BAD_REQUEST)

        if not req.query or not req.query.strip() or not req.headers:
            return _error(MISSING_PARAMS_ERROR, status.HTTP_400_BAD_REQUEST)

        schema = extract_schema(
            req.headers,
            _pick_sample_row(req),
            row_count=len(req.rows) if req.rows is not None else None,
        )

        response = await orchestrator.run(req.query, schema)
        return JSONResponse(status_code=status.HTTP_200_OK, content=response.to_wire())

    except Exception as e:
        logger.exception("[ai-route] Unhandled error: %s", e)
        return _error(str(e) or "Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR)


@router.get("/providers", response_model=List[ProviderStatus])
async def providers(
    orchestrator: WaterfallOrchestrator = Depends(get_orchestrator),
) -> List[ProviderStatus]:
    return list_provider_status(orchestrator.providers)
