# FILE: app/llm/__init__.py
"""
Spreadsheet assistant exports.

Only leaf modules are re-exported here. Import the waterfall from
app.llm.waterfall and the router from app.llm.router directly; both depend on
app.providers, which itself imports app.llm.schemas.
"""

from app.llm.schemas import (
    AIRequest,
    AIResponse,
    ColumnType,
    ProviderStatus,
    ResponseType,
    SpreadsheetSchema,
)
from app.llm.schema_extractor import extract_schema, infer_type

__all__ = [
    "AIRequest",
    "AIResponse",
    "ColumnType",
    "ProviderStatus",
    "ResponseType",
    "SpreadsheetSchema",
    "extract_schema",
    "infer_type",
]
