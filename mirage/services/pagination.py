from __future__ import annotations

import math
from typing import Sequence, TypeVar

T = TypeVar("T")


def num_pages(total: int, page_size: int) -> int:
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    return math.ceil(total / page_size) if total > 0 else 0


def page_offset(page_number: int, page_size: int) -> int:
    # Non-positive pages read as the first page.
    return (max(page_number, 1) - 1) * page_size


def paginate(items: Sequence[T], page_number: int, page_size: int) -> list[T]:
    offset = page_offset(page_number, page_size)
    return list(items[offset:offset + page_size])
