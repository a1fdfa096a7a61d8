"""Ingredient / instruction list encoding.

New rows always store a JSON array of strings. Rows written before that
hold plain text with one entry per line, so reads accept both.
"""
from __future__ import annotations

import json


def parse_text_list(value: str | None) -> list[str]:
    """Decode a stored list field into its non-blank entries."""
    if not value or not value.strip():
        return []
    try:
        parsed = json.loads(value)
    except (json.JSONDecodeError, ValueError):
        return [line.strip() for line in value.splitlines() if line.strip()]

    if isinstance(parsed, list):
        return [str(item).strip() for item in parsed if str(item).strip()]
    # Valid JSON but not a list (e.g. a bare number): keep the raw text
    return [value.strip()]


def encode_text_list(value: list[str] | str) -> str:
    """Normalize a list or freeform text into the stored JSON array form."""
    if isinstance(value, str):
        items = value.splitlines()
    else:
        items = value
    return json.dumps([item.strip() for item in items if item and item.strip()], ensure_ascii=False)
