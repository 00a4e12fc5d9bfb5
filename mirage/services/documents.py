"""Canonical text form of schema-less score payloads."""
from __future__ import annotations

import json
from typing import Any


def _normalized(value: Any) -> Any:
    # bool is an int subclass; keep it distinct from 0/1.
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, dict):
        return {str(key): _normalized(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalized(item) for item in value]
    return value


def canonical_document(data: Any) -> str:
    """Key-order independent JSON text that tells `true` apart from `1`.

    Numbers compare by value, so `1` and `1.0` share a form.
    """
    return json.dumps(_normalized(data), sort_keys=True, separators=(",", ":"), ensure_ascii=False)
