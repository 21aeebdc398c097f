"""Coercion helpers for loosely typed catalog columns.

Every helper is total: malformed input degrades to a neutral value instead of
raising, so a single odd cell never costs a whole row.
"""
from __future__ import annotations

import json
import math
from typing import List, Optional

TRUE_VALUES = {"true", "yes", "1"}


def clean_text(value: Optional[str]) -> str:
    return value if value is not None else ""


def parse_int(value: Optional[str]) -> int:
    if value is None or not value.strip():
        return 0
    try:
        return int(value.strip())
    except ValueError:
        return 0


def parse_float(value: Optional[str]) -> float:
    if value is None or not value.strip():
        return 0.0
    try:
        result = float(value.strip())
    except ValueError:
        return 0.0
    # NaN/inf are not valid JSON numbers for the index.
    return result if math.isfinite(result) else 0.0


def parse_bool(value: Optional[str]) -> bool:
    if value is None or not value.strip():
        return False
    return value.strip().lower() in TRUE_VALUES


def parse_string_list(value: Optional[str]) -> List[str]:
    """Decode a JSON array column; anything else becomes a one-item list."""
    if value is None or not value.strip() or value.strip() == "null":
        return []
    try:
        decoded = json.loads(value)
    except json.JSONDecodeError:
        return [value]
    if decoded is None:
        return []
    if not isinstance(decoded, list):
        return [value]
    return [item if isinstance(item, str) else json.dumps(item) for item in decoded if item is not None]
