"""Shared fixtures: an in-memory SQLite session and a small data seeder."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from forum.db.connection import enable_sqlite_foreign_keys
from forum.db.models import Base, Comment, Followship, Restaurant, User
from forum.services.image_storage import ImageUpload


@pytest_asyncio.fixture
async def session() -> AsyncIterator[AsyncSession]:
    """Provide an in-memory SQLite session with foreign keys enforced."""
    pytest.importorskip("aiosqlite")
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async_session = async_sessionmaker(engine, expire_on_commit=False)
    async with async_session() as db_session:
        yield db_session
        if db_session.in_transaction():
            await db_session.rollback()
    await engine.dispose()


class Seeder:
    """Insert users, restaurants, comments and follows with sensible defaults."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._counter = 0

    async def user(self, name: str | None = None, *, image: str | None = None) -> User:
        self._counter += 1
        user = User(
            name=name or f"user-{self._counter}",
            email=f"user{self._counter}@example.com",
            password="not-a-real-hash",
            image=image,
        )
        self._session.add(user)
        await self._session.flush()
        return user

    async def restaurant(self, name: str | None = None) -> Restaurant:
        self._counter += 1
        restaurant = Restaurant(name=name or f"restaurant-{self._counter}")
        self._session.add(restaurant)
        await self._session.flush()
        return restaurant

    async def comment(self, user: User, restaurant: Restaurant, text: str = "Tasty") -> Comment:
        comment = Comment(text=text, user_id=user.id, restaurant_id=restaurant.id)
        self._session.add(comment)
        await self._session.flush()
        return comment

    async def follow(self, follower: User, following: User) -> Followship:
        followship = Followship(follower_id=follower.id, following_id=following.id)
        self._session.add(followship)
        await self._session.flush()
        return followship


@pytest.fixture
def seed(session: AsyncSession) -> Seeder:
    return Seeder(session)


class RecordingUploader:
    """Uploader double that records every call and returns a fixed reference."""

    def __init__(self, reference: str = "/upload/new-avatar.png") -> None:
        self.reference = reference
        self.calls: list[ImageUpload | None] = []

    async def upload(self, image: ImageUpload | None) -> str | None:
        self.calls.append(image)
        if image is None:
            return None
        return self.reference


@pytest.fixture
def uploader() -> RecordingUploader:
    return RecordingUploader()
