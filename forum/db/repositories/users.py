"""User, restaurant and comment queries backing profile aggregation."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from forum.db.models import Comment, Restaurant, User


class UserRepository:
    """Encapsulates the SQLAlchemy operations required by profile workflows."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_user(self, user_id: int) -> User | None:
        return await self._session.get(User, user_id)

    async def get_restaurant(self, restaurant_id: int) -> Restaurant | None:
        return await self._session.get(Restaurant, restaurant_id)

    async def find_by_email(self, email: str) -> User | None:
        result = await self._session.execute(select(User).where(User.email == email))
        return result.scalars().one_or_none()

    async def find_user_with_followers_and_favorites(self, user_id: int) -> User | None:
        """Load a user together with followers, followings and favorites.

        ``populate_existing`` refreshes collections on instances already held
        by the session, so a follow recorded earlier in the same unit of work
        is visible to the profile read.
        """

        query = (
            select(User)
            .options(
                selectinload(User.followers),
                selectinload(User.followings),
                selectinload(User.favorited_restaurants),
            )
            .where(User.id == user_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(query)
        return result.scalars().unique().one_or_none()

    async def find_user_with_followings(self, user_id: int) -> User | None:
        query = (
            select(User)
            .options(selectinload(User.followings))
            .where(User.id == user_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(query)
        return result.scalars().unique().one_or_none()

    async def list_users_with_followers(self) -> Sequence[User]:
        """Return every user with the followers collection eagerly loaded."""

        query = (
            select(User)
            .options(selectinload(User.followers))
            .order_by(User.id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(query)
        return result.scalars().unique().all()

    async def list_comments_with_restaurants(self, user_id: int) -> Sequence[Comment]:
        """Return the user's comments, newest first, each joined with its restaurant."""

        query = (
            select(Comment)
            .options(selectinload(Comment.restaurant))
            .where(Comment.user_id == user_id)
            .order_by(Comment.created_at.desc(), Comment.id.desc())
        )
        result = await self._session.execute(query)
        return result.scalars().all()

    async def create_user(self, *, name: str, email: str, password_hash: str) -> User:
        user = User(name=name, email=email, password=password_hash)
        self._session.add(user)
        await self._session.flush()
        return user

    async def update_profile(self, user: User, *, name: str, image: str | None) -> User:
        """Apply a profile edit; only ``name`` and ``image`` are mutable here."""

        user.name = name
        user.image = image
        await self._session.flush()
        await self._session.refresh(user)
        return user
