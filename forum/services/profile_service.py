"""Profile aggregation, the follower ranking and profile edits.

Read-side operations:
* ``get_profile``: user + social edges + favorites, rendered for a viewer,
  plus the restaurants the user commented on (deduplicated by id).
* ``get_top_users``: every user ranked by follower count.

Write-side operations:
* ``get_editable_profile``: ownership preflight for the edit form.
* ``edit_profile``: rename and optionally replace the avatar.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from forum.db.models import Restaurant, User
from forum.db.repositories import UserRepository
from forum.errors import InvalidOperationError, NotFoundError, PermissionDeniedError
from forum.schemas.users import (
    ProfileView,
    RestaurantSummary,
    TopUser,
    UserAccount,
    UserProfile,
    UserSummary,
)
from forum.services.image_storage import ImageUpload, ImageUploader

logger = logging.getLogger(__name__)


def dedupe_restaurants(restaurants: Iterable[Restaurant]) -> list[Restaurant]:
    """Drop repeated restaurants, keyed by id, keeping first-seen order."""

    seen: set[int] = set()
    unique: list[Restaurant] = []
    for restaurant in restaurants:
        if restaurant.id in seen:
            continue
        seen.add(restaurant.id)
        unique.append(restaurant)
    return unique


def rank_by_followers(
    users: Sequence[User], *, followed_ids: set[int], limit: int | None = None
) -> list[TopUser]:
    """Sort users by follower count, highest first, ties by ascending id."""

    ranked = sorted(
        (
            TopUser(
                id=user.id,
                name=user.name,
                email=user.email,
                image=user.image,
                follower_count=len(user.followers),
                is_followed=user.id in followed_ids,
            )
            for user in users
        ),
        key=lambda entry: (-entry.follower_count, entry.id),
    )
    if limit is not None:
        return ranked[:limit]
    return ranked


class ProfileService:
    """Read and edit user profiles on behalf of an explicit acting user."""

    def __init__(self, *, users: UserRepository, uploader: ImageUploader) -> None:
        self._users = users
        self._uploader = uploader

    async def get_profile(self, *, user_id: int, viewer_id: int) -> ProfileView:
        user = await self._users.find_user_with_followers_and_favorites(user_id)
        if user is None:
            raise NotFoundError("User doesn't exist!")

        comments = await self._users.list_comments_with_restaurants(user_id)
        commented = dedupe_restaurants(comment.restaurant for comment in comments)

        profile = UserProfile(
            id=user.id,
            name=user.name,
            email=user.email,
            image=user.image,
            followers=[UserSummary.model_validate(item) for item in user.followers],
            followings=[UserSummary.model_validate(item) for item in user.followings],
            favorited_restaurants=[
                RestaurantSummary.model_validate(item)
                for item in user.favorited_restaurants
            ],
            follower_count=len(user.followers),
            following_count=len(user.followings),
            favorited_count=len(user.favorited_restaurants),
            is_followed=any(follower.id == viewer_id for follower in user.followers),
        )
        return ProfileView(
            user=profile,
            commented_restaurants=[
                RestaurantSummary.model_validate(item) for item in commented
            ],
        )

    async def get_top_users(
        self, *, viewer_id: int, limit: int | None = None
    ) -> list[TopUser]:
        viewer = await self._users.find_user_with_followings(viewer_id)
        followed_ids = {user.id for user in viewer.followings} if viewer else set()

        users = await self._users.list_users_with_followers()
        return rank_by_followers(users, followed_ids=followed_ids, limit=limit)

    async def get_editable_profile(self, *, actor_id: int, user_id: int) -> UserAccount:
        user = await self._require_owned_user(actor_id=actor_id, user_id=user_id)
        return UserAccount.model_validate(user)

    async def edit_profile(
        self,
        *,
        actor_id: int,
        user_id: int,
        name: str | None,
        image: ImageUpload | None = None,
    ) -> UserAccount:
        cleaned_name = (name or "").strip()
        if not cleaned_name:
            raise InvalidOperationError("User name is required!")

        user = await self._require_owned_user(actor_id=actor_id, user_id=user_id)

        # Upload only once ownership is confirmed.
        image_ref = await self._uploader.upload(image)
        updated = await self._users.update_profile(
            user, name=cleaned_name, image=image_ref or user.image
        )
        logger.info("Updated profile of user %s", user_id)
        return UserAccount.model_validate(updated)

    async def _require_owned_user(self, *, actor_id: int, user_id: int) -> User:
        user = await self._users.get_user(user_id)
        if user is None:
            raise NotFoundError("User doesn't exist!")
        if user.id != actor_id:
            raise PermissionDeniedError("Permission denied!")
        return user
