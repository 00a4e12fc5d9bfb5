"""Content-derived chart identity.

Browser clients link to chart pages with ``SHA1(`${game}${title}${artist}`)``,
so values are rendered the way a JavaScript template literal renders them.
"""
from __future__ import annotations

import hashlib
from typing import Any, Mapping

MISSING: Any = object()


def _template_text(value: Any) -> str:
    if value is MISSING:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def chart_id(game_internal_name: str, title: Any = MISSING, artist: Any = MISSING) -> str:
    raw = f"{game_internal_name}{_template_text(title)}{_template_text(artist)}"
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()


def chart_id_for_record(game_internal_name: str, record: Mapping[str, Any]) -> str:
    return chart_id(
        game_internal_name,
        record.get("title", MISSING),
        record.get("artist", MISSING),
    )
