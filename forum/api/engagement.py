"""FastAPI routers for the favorite, like and follow toggles.

Each router exposes ``POST`` to create the relation and ``DELETE`` to remove
it; both answer ``204 No Content``. Domain errors propagate to the exception
handlers registered in :mod:`forum.main`.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from forum.services.dependencies import get_current_user_id, get_engagement_service
from forum.services.engagement_service import EngagementService

favorites_router = APIRouter()
likes_router = APIRouter()
following_router = APIRouter()


@favorites_router.post("/{restaurant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def add_favorite(
    restaurant_id: int,
    user_id: int = Depends(get_current_user_id),
    service: EngagementService = Depends(get_engagement_service),
) -> Response:
    await service.add_favorite(user_id=user_id, restaurant_id=restaurant_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@favorites_router.delete("/{restaurant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_favorite(
    restaurant_id: int,
    user_id: int = Depends(get_current_user_id),
    service: EngagementService = Depends(get_engagement_service),
) -> Response:
    await service.remove_favorite(user_id=user_id, restaurant_id=restaurant_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@likes_router.post("/{restaurant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def add_like(
    restaurant_id: int,
    user_id: int = Depends(get_current_user_id),
    service: EngagementService = Depends(get_engagement_service),
) -> Response:
    await service.add_like(user_id=user_id, restaurant_id=restaurant_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@likes_router.delete("/{restaurant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_like(
    restaurant_id: int,
    user_id: int = Depends(get_current_user_id),
    service: EngagementService = Depends(get_engagement_service),
) -> Response:
    await service.remove_like(user_id=user_id, restaurant_id=restaurant_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@following_router.post("/{following_id}", status_code=status.HTTP_204_NO_CONTENT)
async def add_following(
    following_id: int,
    follower_id: int = Depends(get_current_user_id),
    service: EngagementService = Depends(get_engagement_service),
) -> Response:
    await service.add_following(follower_id=follower_id, following_id=following_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@following_router.delete("/{following_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_following(
    following_id: int,
    follower_id: int = Depends(get_current_user_id),
    service: EngagementService = Depends(get_engagement_service),
) -> Response:
    await service.remove_following(follower_id=follower_id, following_id=following_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
