"""
Text helpers for names, placeholders and completion details.
"""

from __future__ import annotations

import json
import re
from datetime import date
from typing import Any

from sprite_designer.constants import DEFAULT_EXPORT_NAME, MAX_REASONING_FALLBACK_CHARS


def today_stamp(today: date | None = None) -> str:
    """Date as MM-DD-YYYY."""
    today = today or date.today()
    return today.strftime("%m-%d-%Y")


def default_project_placeholder(rows: int, cols: int, project_count: int, today: date | None = None) -> str:
    """Suggested name for a new project, e.g. "sprite-4x4-03-01-2026-3"."""
    return f"sprite-{rows}x{cols}-{today_stamp(today)}-{project_count + 1}"


def safe_export_name(value: str) -> str:
    """Reduce a child name to a filename-safe stem."""
    normalized = re.sub(r"[^a-zA-Z0-9._-]+", "-", value.strip())
    normalized = re.sub(r"-+", "-", normalized).strip("-")
    return normalized or DEFAULT_EXPORT_NAME


def _collect_text(value: Any, output: list[str]) -> None:
    if isinstance(value, list):
        for item in value:
            _collect_text(item, output)
        return

    if isinstance(value, dict):
        text = value.get("text")
        if isinstance(text, str) and text.strip():
            output.append(text.strip())
        for key, nested in value.items():
            if key != "text" and isinstance(nested, (list, dict)):
                _collect_text(nested, output)


def reasoning_details_text(reasoning_details: str | None) -> str | None:
    """
    Turn a raw reasoning-details payload into readable text.

    JSON payloads are searched for "text" fields at any depth. Anything else is
    returned as-is, truncated to MAX_REASONING_FALLBACK_CHARS.
    """
    if not reasoning_details:
        return None
    trimmed = reasoning_details.strip()
    if not trimmed:
        return None
    if not trimmed.startswith(("{", "[")):
        return trimmed

    try:
        parsed = json.loads(trimmed)
    except json.JSONDecodeError:
        parsed = None
    if parsed is not None:
        snippets: list[str] = []
        _collect_text(parsed, snippets)
        if snippets:
            return "\n\n".join(snippets)

    if len(trimmed) <= MAX_REASONING_FALLBACK_CHARS:
        return trimmed
    return f"{trimmed[:MAX_REASONING_FALLBACK_CHARS]}\n\n[truncated large reasoning details]"
