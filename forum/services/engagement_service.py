"""Relation toggles: favorite, like and follow.

Every operation follows the same "find-or-fail, then mutate" contract:

* ``add_*`` requires the acting user and the target to exist and the pair to
  be absent, then inserts one row. Following yourself is rejected before
  anything else.
* ``remove_*`` requires the pair to exist, then deletes that row.

The existence check gives callers a precise error message; the composite
unique constraint on each table backs it up when two requests race.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from forum.db.repositories import (
    RelationRepository,
    UserRepository,
    favorites_repository,
    followships_repository,
    likes_repository,
)
from forum.errors import ConflictError, InvalidOperationError, NotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RelationRules:
    """Messages and constraints that distinguish one relation from another."""

    name: str
    target_missing: str
    already_exists: str
    not_existing: str
    allow_self: bool = True
    self_relation: str = ""


ACTOR_MISSING = "User doesn't exist!"

FAVORITE_RULES = RelationRules(
    name="favorite",
    target_missing="Restaurant doesn't exist!",
    already_exists="You have favorited this restaurant!",
    not_existing="You haven't favorited this restaurant",
)
LIKE_RULES = RelationRules(
    name="like",
    target_missing="Restaurant doesn't exist!",
    already_exists="You have liked this restaurant!",
    not_existing="You haven't liked this restaurant",
)
FOLLOW_RULES = RelationRules(
    name="followship",
    target_missing="User doesn't exist!",
    already_exists="You have already followed the user!",
    not_existing="You haven't followed the user",
    allow_self=False,
    self_relation="You cannot follow yourself!",
)


class EngagementService:
    """Coordinates the three relation repositories and target lookups."""

    def __init__(
        self,
        *,
        users: UserRepository,
        favorites: RelationRepository,
        likes: RelationRepository,
        followships: RelationRepository,
    ) -> None:
        self._users = users
        self._favorites = favorites
        self._likes = likes
        self._followships = followships

    async def add_favorite(self, *, user_id: int, restaurant_id: int) -> None:
        await self._add(
            self._favorites,
            FAVORITE_RULES,
            actor_id=user_id,
            target_id=restaurant_id,
            target_exists=self._restaurant_exists,
        )

    async def remove_favorite(self, *, user_id: int, restaurant_id: int) -> None:
        await self._remove(
            self._favorites, FAVORITE_RULES, actor_id=user_id, target_id=restaurant_id
        )

    async def add_like(self, *, user_id: int, restaurant_id: int) -> None:
        await self._add(
            self._likes,
            LIKE_RULES,
            actor_id=user_id,
            target_id=restaurant_id,
            target_exists=self._restaurant_exists,
        )

    async def remove_like(self, *, user_id: int, restaurant_id: int) -> None:
        await self._remove(
            self._likes, LIKE_RULES, actor_id=user_id, target_id=restaurant_id
        )

    async def add_following(self, *, follower_id: int, following_id: int) -> None:
        await self._add(
            self._followships,
            FOLLOW_RULES,
            actor_id=follower_id,
            target_id=following_id,
            target_exists=self._user_exists,
        )

    async def remove_following(self, *, follower_id: int, following_id: int) -> None:
        await self._remove(
            self._followships,
            FOLLOW_RULES,
            actor_id=follower_id,
            target_id=following_id,
        )

    async def _add(
        self,
        repository: RelationRepository,
        rules: RelationRules,
        *,
        actor_id: int,
        target_id: int,
        target_exists: Callable[[int], Awaitable[bool]],
    ) -> None:
        if not rules.allow_self and actor_id == target_id:
            raise InvalidOperationError(rules.self_relation)
        if not await self._user_exists(actor_id):
            raise NotFoundError(ACTOR_MISSING)
        if not await target_exists(target_id):
            raise NotFoundError(rules.target_missing)
        if await repository.find_relation(actor_id, target_id) is not None:
            raise ConflictError(rules.already_exists)

        try:
            await repository.create_relation(actor_id, target_id)
        except ConflictError as exc:
            raise ConflictError(rules.already_exists) from exc

        logger.info("Created %s %s -> %s", rules.name, actor_id, target_id)

    async def _remove(
        self,
        repository: RelationRepository,
        rules: RelationRules,
        *,
        actor_id: int,
        target_id: int,
    ) -> None:
        relation = await repository.find_relation(actor_id, target_id)
        if relation is None:
            raise NotFoundError(rules.not_existing)

        await repository.delete_relation(relation)
        logger.info("Removed %s %s -> %s", rules.name, actor_id, target_id)

    async def _restaurant_exists(self, restaurant_id: int) -> bool:
        return await self._users.get_restaurant(restaurant_id) is not None

    async def _user_exists(self, user_id: int) -> bool:
        return await self._users.get_user(user_id) is not None


def build_engagement_service(session: AsyncSession) -> EngagementService:
    """Wire the service against a single session."""

    return EngagementService(
        users=UserRepository(session),
        favorites=favorites_repository(session),
        likes=likes_repository(session),
        followships=followships_repository(session),
    )
