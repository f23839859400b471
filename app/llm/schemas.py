# FILE: app/llm/schemas.py
"""
Schemas for the spreadsheet AI assistant.

PRIVACY RULES:
1. SpreadsheetSchema is the ONLY object ever sent to an external provider
2. It carries column names, inferred types and (optionally) a row count
3. sample_data holds type tags for at most ONE row, never raw cell values
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ColumnType(str, Enum):
    """Inferred type of a spreadsheet column."""
    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    DATE = "date"
    NULL = "null"


class ResponseType(str, Enum):
    """Kind of answer returned to the editor."""
    FORMULA = "formula"
    TRANSFORMATION = "transformation"
    ERROR = "error"


class SpreadsheetSchema(BaseModel):
    """Column-level description of a sheet, safe to hand to a third party."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    headers: List[str]
    column_types: Dict[str, ColumnType] = Field(default_factory=dict, alias="columnTypes")
    sample_data: Optional[List[List[ColumnType]]] = Field(default=None, alias="sampleData")
    row_count: Optional[int] = Field(default=None, alias="rowCount", ge=0)

    def to_prompt_dict(self) -> Dict[str, Any]:
        """Wire form used inside provider prompts (camelCase, no empty fields)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AIResponse(BaseModel):
    """Terminal result of one assistant request."""
    model_config = ConfigDict(frozen=True)

    success: bool
    type: ResponseType
    code: Optional[str] = None
    explanation: Optional[str] = None
    error: Optional[str] = None
    provider: Optional[str] = None

    @classmethod
    def failure(cls, message: str) -> "AIResponse":
        return cls(success=False, type=ResponseType.ERROR, error=message)

    def with_provider(self, provider: str) -> "AIResponse":
        return self.model_copy(update={"provider": provider})

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class AIRequest(BaseModel):
    """
    Body of POST /api/ai.

    Fields are optional here so that a missing query/headers reaches the
    endpoint's own validation (400) instead of FastAPI's generic 422.
    """
    query: Optional[str] = None
    headers: Optional[List[str]] = None
    rows: Optional[List[List[Any]]] = None
    firstRow: Optional[List[Any]] = None


class ProviderStatus(BaseModel):
    name: str
    description: str
    model: str
    configured: bool


__all__ = [
    "ColumnType",
    "ResponseType",
    "SpreadsheetSchema",
    "AIResponse",
    "AIRequest",
    "ProviderStatus",
]
