# FILE: tests/conftest.py
"""
Pytest configuration for the SheetSmith test suite.

Configures:
- project root on sys.path
- shared schema / mock-provider fixtures
- a clean provider environment (no real API keys leak into tests)
"""
import sys
from pathlib import Path

_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import pytest
from unittest.mock import AsyncMock

from app.llm.schemas import ColumnType, SpreadsheetSchema
from app.providers.base import ProviderDescriptor

PROVIDER_ENV_VARS = [
    "GROQ_API_KEY",
    "DEEPSEEK_API_KEY",
    "XAI_API_KEY",
    "COHERE_API_KEY",
    "OPENAI_API_KEY",
    "SHEETS_AI_PROVIDER_ORDER",
]


@pytest.fixture(autouse=True)
def clean_provider_env(monkeypatch):
    """Strip real provider keys from the environment for every test."""
    for var in PROVIDER_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def schema():
    """Two-column schema with one row of type tags."""
    return SpreadsheetSchema(
        headers=["Cost", "Revenue"],
        column_types={"Cost": ColumnType.NUMBER, "Revenue": ColumnType.NUMBER},
        sample_data=[[ColumnType.NUMBER, ColumnType.NUMBER]],
    )


@pytest.fixture
def make_provider():
    """Factory: make_provider("Groq", returns=AIResponse | side_effect=...)."""
    def _make(name, returns=None, side_effect=None, description="test provider"):
        handler = AsyncMock(return_value=returns, side_effect=side_effect)
        return ProviderDescriptor(name=name, handler=handler, description=description)
    return _make
