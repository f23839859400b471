# FILE: app/llm/schema_extractor.py
"""
Privacy-safe schema extraction.

Turns the editor's headers (+ optional first row) into a SpreadsheetSchema.
Only TYPE TAGS of the first row survive; the values themselves are dropped here,
before anything can reach a provider.

Inference order (first match wins):
    None                  -> null
    bool                  -> boolean   (before number: bool is an int in Python)
    int / float           -> number
    date / datetime       -> date
    str parsing as date   -> date
    non-blank numeric str -> number
    anything else         -> string
"""

from __future__ import annotations

import logging
import math
import re
from datetime import date, datetime
from typing import Any, Optional, Sequence

from app.llm.schemas import ColumnType, SpreadsheetSchema

logger = logging.getLogger(__name__)


# Formats seen in pasted/imported sheets besides ISO-8601
_DATE_FORMATS = (
    "%m/%d/%Y",
    "%m/%d/%y",
    "%Y/%m/%d",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%b %d %Y",
    "%B %d %Y",
)

# A date needs at least one separator; "2024" or "42" stay numbers.
_DATE_SHAPE = re.compile(r"\d.*[-/ ,]|[A-Za-z]{3,}.*\d")


def _looks_like_date(text: str) -> bool:
    s = text.strip()
    if not s or not _DATE_SHAPE.search(s):
        return False

    iso = s[:-1] + "+00:00" if s.endswith("Z") else s
    try:
        datetime.fromisoformat(iso)
        return True
    except ValueError:
        pass

    for fmt in _DATE_FORMATS:
        try:
            datetime.strptime(s, fmt)
            return True
        except ValueError:
            continue
    return False


def _looks_like_number(text: str) -> bool:
    s = text.strip()
    # float() also takes "nan", "inf" and "1_000"; none of those is a sheet number
    if not s or "_" in s:
        return False
    try:
        number = float(s.replace(",", ""))
    except ValueError:
        return False
    return math.isfinite(number)


def infer_type(value: Any) -> ColumnType:
    """Infer the column type of a single cell value. Never raises."""
    if value is None:
        return ColumnType.NULL
    if isinstance(value, bool):
        return ColumnType.BOOLEAN
    if isinstance(value, (int, float)):
        return ColumnType.NUMBER
    if isinstance(value, (date, datetime)):
        return ColumnType.DATE
    if isinstance(value, str):
        if _looks_like_date(value):
            return ColumnType.DATE
        if _looks_like_number(value):
            return ColumnType.NUMBER
    return ColumnType.STRING


def extract_schema(
    headers: Sequence[str],
    sample_row: Optional[Sequence[Any]] = None,
    row_count: Optional[int] = None,
) -> SpreadsheetSchema:
    """
    Build a SpreadsheetSchema WITHOUT carrying any cell values.

    Args:
        headers: Column names, in sheet order
        sample_row: Optional first row; only used for type inference
        row_count: Optional number of rows in the sheet

    Returns:
        SpreadsheetSchema whose sample_data (if any) is one row of type tags
    """
    header_list = [str(h) for h in headers]

    if sample_row is None:
        column_types = {h: ColumnType.STRING for h in header_list}
        return SpreadsheetSchema(
            headers=header_list,
            column_types=column_types,
            row_count=row_count,
        )

    row = list(sample_row)
    tags = [infer_type(row[i] if i < len(row) else None) for i in range(len(header_list))]
    column_types = dict(zip(header_list, tags))

    logger.debug("[schema] inferred %d column types from sample row", len(tags))

    return SpreadsheetSchema(
        headers=header_list,
        column_types=column_types,
        sample_data=[tags],
        row_count=row_count,
    )


__all__ = ["infer_type", "extract_schema"]
