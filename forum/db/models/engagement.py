"""SQLAlchemy ORM models for the engagement relations.

Favorites, likes and followships are pure existence toggles: a row either
exists for a key pair or it does not, and rows are never updated in place.
Each table carries a composite unique constraint so the database, not a prior
existence check, is the final arbiter of "at most one row per pair".
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from . import Base, utcnow


class Favorite(Base):
    """User marked a restaurant as a favorite."""

    __tablename__ = "favorites"
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "restaurant_id",
            name="uq_favorites_user_restaurant",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    restaurant_id: Mapped[int] = mapped_column(
        ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class Like(Base):
    """User liked a restaurant. Same shape as :class:`Favorite`, separate table."""

    __tablename__ = "likes"
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "restaurant_id",
            name="uq_likes_user_restaurant",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    restaurant_id: Mapped[int] = mapped_column(
        ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class Followship(Base):
    """Directed edge: ``follower_id`` follows ``following_id``."""

    __tablename__ = "followships"
    __table_args__ = (
        UniqueConstraint(
            "follower_id",
            "following_id",
            name="uq_followships_follower_following",
        ),
        CheckConstraint(
            "follower_id <> following_id",
            name="ck_followships_no_self_follow",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    follower_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    following_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="Indexed for the follower lookups used by profiles and rankings",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
