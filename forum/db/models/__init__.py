from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        doc="Login identifier; uniqueness is enforced by the sign-up flow and the store.",
    )
    password: Mapped[str] = mapped_column(
        String(255), nullable=False, doc="bcrypt hash, never the plain password"
    )
    image: Mapped[str | None] = mapped_column(
        String(1024),
        nullable=True,
        doc="Avatar reference returned by the configured image uploader",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    # Read-only views over the relation tables. Mutations always go through
    # the Favorite/Like/Followship rows themselves.
    followers: Mapped[list[User]] = relationship(
        "User",
        secondary="followships",
        primaryjoin="User.id == Followship.following_id",
        secondaryjoin="User.id == Followship.follower_id",
        viewonly=True,
    )
    followings: Mapped[list[User]] = relationship(
        "User",
        secondary="followships",
        primaryjoin="User.id == Followship.follower_id",
        secondaryjoin="User.id == Followship.following_id",
        viewonly=True,
    )
    favorited_restaurants: Mapped[list[Restaurant]] = relationship(
        "Restaurant", secondary="favorites", viewonly=True
    )
    comments: Mapped[list[Comment]] = relationship("Comment", back_populates="user")


class Restaurant(Base):
    __tablename__ = "restaurants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    tel: Mapped[str | None] = mapped_column(String(64), nullable=True)
    address: Mapped[str | None] = mapped_column(String(512), nullable=True)
    opening_hours: Mapped[str | None] = mapped_column(String(64), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    image: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    comments: Mapped[list[Comment]] = relationship(
        "Comment", back_populates="restaurant"
    )


class Comment(Base):
    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    restaurant_id: Mapped[int] = mapped_column(
        ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    user: Mapped[User] = relationship("User", back_populates="comments")
    restaurant: Mapped[Restaurant] = relationship(
        "Restaurant", back_populates="comments"
    )


# Imported late to avoid circular dependency with the engagement module.
from .engagement import Favorite, Followship, Like  # noqa: E402

__all__ = [
    "Base",
    "Comment",
    "Favorite",
    "Followship",
    "Like",
    "Restaurant",
    "User",
    "utcnow",
]
