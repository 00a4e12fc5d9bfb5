"""Parsing of raw query-string parameters into engine values."""
from __future__ import annotations

from mirage.services.errors import ValidationError


def parse_int_param(name: str, raw: str | int) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {name} parameter") from None


def parse_flag(raw: str | None) -> bool:
    return raw is not None and raw.strip().lower() == "true"
