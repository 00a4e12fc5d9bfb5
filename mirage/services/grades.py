"""Grade ordinal table and sort-key classification.

Score payloads are schema-less per game, so the value class of a sort key is
inferred from one sampled record rather than declared. The sampled record's
class is trusted for the whole query.
"""
from __future__ import annotations

import math
import re
from enum import StrEnum
from typing import Any

TIMESTAMP_KEY = "timestamp"

# Low -> high.
GRADE_ORDER: tuple[str, ...] = (
    "F", "F+",
    "E-", "E", "E+",
    "D-", "D", "D+",
    "C-", "C", "C+",
    "B-", "B", "B+",
    "A-", "A", "A+",
    "AA-", "AA", "AA+",
    "AAA-", "AAA", "AAA+",
    "S-", "S", "S+",
    "SS-", "SS", "SS+",
    "SSS-", "SSS", "SSS+",
)

GRADE_RANK: dict[str, int] = {grade: index for index, grade in enumerate(GRADE_ORDER)}

_GRADE_PATTERN = re.compile(r"^[A-Z]+[+-]?$", re.IGNORECASE)


class SortClass(StrEnum):
    TIMESTAMP = "timestamp"
    NUMERIC = "numeric"
    GRADE = "grade"
    UNKNOWN = "unknown"


def is_timestamp_key(sort_key: str | None) -> bool:
    return not sort_key or sort_key == TIMESTAMP_KEY


def classify(sort_key: str | None, sampled_value: Any) -> SortClass:
    """Classify a requested sort key from one sampled payload value.

    ``sampled_value`` is ignored for the timestamp key. ``None`` means no
    record carries a value for the key.
    """
    if is_timestamp_key(sort_key):
        return SortClass.TIMESTAMP
    if sampled_value is None:
        return SortClass.UNKNOWN
    if _GRADE_PATTERN.match(str(sampled_value).strip()):
        return SortClass.GRADE
    return SortClass.NUMERIC


def grade_rank(value: Any) -> int | None:
    """Position of a grade in GRADE_ORDER, or None for values outside the table."""
    if value is None:
        return None
    return GRADE_RANK.get(str(value).strip().upper())


def numeric_value(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return None
    return None if math.isnan(number) else number
