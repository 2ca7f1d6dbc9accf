"""FastAPI dependency wiring for forum services.

Separating dependency factories from service implementation modules keeps the
latter free of web-layer concerns, so tests and scripts can build services
directly from a session.
"""

from __future__ import annotations

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from forum.db.connection import get_db
from forum.db.repositories import UserRepository
from forum.services.account_service import AccountService
from forum.services.engagement_service import (
    EngagementService,
    build_engagement_service,
)
from forum.services.image_storage import ImageUploader, build_image_uploader
from forum.services.profile_service import ProfileService
from forum.settings import get_settings


def get_current_user_id(
    x_user_id: str | None = Header(
        default=None,
        description="Identifier of the acting user, supplied by the identity provider.",
    ),
) -> int:
    """Resolve the acting user from the ``X-User-Id`` header."""

    value = (x_user_id or "").strip()
    if not (value.isascii() and value.isdecimal()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid X-User-Id header",
        )
    return int(value)


def get_image_uploader() -> ImageUploader:
    return build_image_uploader(get_settings())


def get_engagement_service(
    session: AsyncSession = Depends(get_db),
) -> EngagementService:
    return build_engagement_service(session)


def get_profile_service(
    session: AsyncSession = Depends(get_db),
    uploader: ImageUploader = Depends(get_image_uploader),
) -> ProfileService:
    return ProfileService(users=UserRepository(session), uploader=uploader)


def get_account_service(session: AsyncSession = Depends(get_db)) -> AccountService:
    return AccountService(users=UserRepository(session))


__all__ = [
    "get_account_service",
    "get_current_user_id",
    "get_engagement_service",
    "get_image_uploader",
    "get_profile_service",
]
