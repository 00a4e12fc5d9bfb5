from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class Game:
    internal_name: str
    formatted_name: str
    description: str = ""


@dataclass(frozen=True)
class User:
    id: int
    username: str


@dataclass(frozen=True)
class Chart:
    """One song+difficulty, addressed by a content digest rather than an assigned key."""
    game_internal_name: str
    chart_id: str
    title: str | None = None
    artist: str | None = None


@dataclass
class Score:
    """A single uploaded play. `data` is the game's opaque display payload."""
    game_internal_name: str
    user_id: int
    chart_id: str
    timestamp: int | None = None
    data: dict[str, Any] = field(default_factory=dict)
    id: int | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
