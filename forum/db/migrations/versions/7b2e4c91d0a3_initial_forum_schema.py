"""initial forum schema

Revision ID: 7b2e4c91d0a3
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from __future__ import annotations

from typing import Sequence

from alembic import op
import sqlalchemy as sa

revision: str = "7b2e4c91d0a3"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None

# (table, unique constraint) pairs sharing the user -> restaurant shape.
RESTAURANT_RELATION_TABLES = (
    ("favorites", "uq_favorites_user_restaurant"),
    ("likes", "uq_likes_user_restaurant"),
)


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password", sa.String(length=255), nullable=False),
        sa.Column("image", sa.String(length=1024), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "restaurants",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("tel", sa.String(length=64), nullable=True),
        sa.Column("address", sa.String(length=512), nullable=True),
        sa.Column("opening_hours", sa.String(length=64), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image", sa.String(length=1024), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("ix_restaurants_name", "restaurants", ["name"])

    op.create_table(
        "comments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("restaurant_id", sa.Integer(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["restaurant_id"], ["restaurants.id"], ondelete="CASCADE"
        ),
    )
    op.create_index("ix_comments_user_id", "comments", ["user_id"])
    op.create_index("ix_comments_restaurant_id", "comments", ["restaurant_id"])

    for table_name, constraint_name in RESTAURANT_RELATION_TABLES:
        op.create_table(
            table_name,
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("restaurant_id", sa.Integer(), nullable=False),
            _timestamp("created_at"),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(
                ["restaurant_id"], ["restaurants.id"], ondelete="CASCADE"
            ),
            sa.UniqueConstraint("user_id", "restaurant_id", name=constraint_name),
        )
        op.create_index(f"ix_{table_name}_user_id", table_name, ["user_id"])
        op.create_index(f"ix_{table_name}_restaurant_id", table_name, ["restaurant_id"])

    op.create_table(
        "followships",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("follower_id", sa.Integer(), nullable=False),
        sa.Column("following_id", sa.Integer(), nullable=False),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["follower_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["following_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "follower_id",
            "following_id",
            name="uq_followships_follower_following",
        ),
        sa.CheckConstraint(
            "follower_id <> following_id",
            name="ck_followships_no_self_follow",
        ),
    )
    op.create_index("ix_followships_follower_id", "followships", ["follower_id"])
    op.create_index("ix_followships_following_id", "followships", ["following_id"])


def downgrade() -> None:
    op.drop_index("ix_followships_following_id", table_name="followships")
    op.drop_index("ix_followships_follower_id", table_name="followships")
    op.drop_table("followships")

    for table_name, _ in reversed(RESTAURANT_RELATION_TABLES):
        op.drop_index(f"ix_{table_name}_restaurant_id", table_name=table_name)
        op.drop_index(f"ix_{table_name}_user_id", table_name=table_name)
        op.drop_table(table_name)

    op.drop_index("ix_comments_restaurant_id", table_name="comments")
    op.drop_index("ix_comments_user_id", table_name="comments")
    op.drop_table("comments")

    op.drop_index("ix_restaurants_name", table_name="restaurants")
    op.drop_table("restaurants")

    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
