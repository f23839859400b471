# FILE: main.py
"""
SheetSmith Backend - FastAPI Application
Version: 0.4.0

Serves the spreadsheet editor's AI assistant:
- POST /api/ai            formula / transformation generation
- GET  /api/ai/providers  provider waterfall status

Privacy:
- Only column headers, inferred column types and a row count are ever sent
  to an AI provider. Cell values never leave this process.
"""
import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load .env FIRST before any other imports that might need env vars
load_dotenv()

from app.llm.router import router as ai_router, get_orchestrator
from app.providers.registry import is_descriptor_configured

logging.basicConfig(
    level=os.getenv("SHEETS_AI_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("sheetsmith")

APP_VERSION = "0.4.0"

app = FastAPI(
    title="SheetSmith",
    version=APP_VERSION,
    description="Spreadsheet AI assistant with privacy-preserving multi-provider fallback",
)

# ====== CORS ======

_cors_origins = [
    o.strip()
    for o in os.getenv("SHEETS_AI_CORS_ORIGINS", "http://localhost:3000").split(",")
    if o.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ====== STARTUP ======

@app.on_event("startup")
def on_startup():
    orchestrator = get_orchestrator()
    logger.info("[startup] Per-attempt timeout: %.1fs", orchestrator.timeout_seconds)

    for descriptor in orchestrator.providers:
        if is_descriptor_configured(descriptor):
            logger.info("[startup] %s: [OK] %s set", descriptor.name, descriptor.env_key_name)
        else:
            logger.info("[startup] %s: [X] %s NOT SET - will fail fast", descriptor.name, descriptor.env_key_name)

    if not any(is_descriptor_configured(d) for d in orchestrator.providers):
        logger.warning("[startup] No AI provider keys configured; every request will report all providers failed")


# ====== ROUTERS ======

app.include_router(ai_router)


@app.get("/")
def root():
    return {"service": "SheetSmith", "version": APP_VERSION}
