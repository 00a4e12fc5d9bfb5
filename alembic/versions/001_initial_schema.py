"""initial schema: games, users, charts, scores

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_DOCUMENT = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    # ── Catalog & accounts (owned by external components) ──
    op.create_table(
        "games",
        sa.Column("internal_name", sa.String(), primary_key=True),
        sa.Column("formatted_name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=False, server_default=""),
    )
    op.create_index("ix_games_formatted_name", "games", ["formatted_name"])

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    # ── Charts: content-addressed, created lazily by ingestion ──
    op.create_table(
        "charts",
        sa.Column("game_internal_name", sa.String(), sa.ForeignKey("games.internal_name"), nullable=False),
        sa.Column("chart_id", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=True),
        sa.Column("artist", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("game_internal_name", "chart_id"),
    )

    # ── Scores ──
    op.create_table(
        "scores",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("game_internal_name", sa.String(), sa.ForeignKey("games.internal_name"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("chart_id", sa.String(), nullable=False),
        sa.Column("timestamp", sa.BigInteger(), nullable=True),
        sa.Column("data_jsonb", JSON_DOCUMENT, nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_scores_game_internal_name", "scores", ["game_internal_name"])
    op.create_index("ix_scores_user_id", "scores", ["user_id"])
    op.create_index("ix_scores_chart_id", "scores", ["chart_id"])
    op.create_index("ix_scores_timestamp", "scores", ["timestamp"])
    op.create_index("ix_scores_game_user", "scores", ["game_internal_name", "user_id"])
    op.create_index("ix_scores_game_chart", "scores", ["game_internal_name", "chart_id"])


def downgrade() -> None:
    op.drop_table("scores")
    op.drop_table("charts")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
    op.drop_index("ix_games_formatted_name", table_name="games")
    op.drop_table("games")
