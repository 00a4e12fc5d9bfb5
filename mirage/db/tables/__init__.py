from mirage.db.tables.accounts import GameRow, UserRow
from mirage.db.tables.scores import ChartRow, ScoreRow

__all__ = [
    "GameRow", "UserRow",
    "ChartRow", "ScoreRow",
]
