"""FastAPI router exposing account, profile and ranking endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from forum.schemas.users import ProfileView, SignUpRequest, TopUser, UserAccount
from forum.services.account_service import AccountService
from forum.services.dependencies import (
    get_account_service,
    get_current_user_id,
    get_profile_service,
)
from forum.services.image_storage import ImageUpload
from forum.services.profile_service import ProfileService

router = APIRouter()


@router.post(
    "/signup",
    response_model=UserAccount,
    status_code=status.HTTP_201_CREATED,
)
async def sign_up(
    payload: SignUpRequest,
    service: AccountService = Depends(get_account_service),
) -> UserAccount:
    """Register a new account."""

    return await service.sign_up(payload)


@router.get("/top", response_model=list[TopUser])
async def get_top_users(
    limit: int | None = Query(
        default=None, ge=1, description="Optional cap on the number of users returned"
    ),
    viewer_id: int = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service),
) -> list[TopUser]:
    """Rank users by follower count, flagging the ones the viewer follows."""

    return await service.get_top_users(viewer_id=viewer_id, limit=limit)


@router.get("/{user_id}", response_model=ProfileView)
async def get_profile(
    user_id: int,
    viewer_id: int = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileView:
    """Return the aggregated profile page for ``user_id``."""

    return await service.get_profile(user_id=user_id, viewer_id=viewer_id)


@router.get("/{user_id}/edit", response_model=UserAccount)
async def get_editable_profile(
    user_id: int,
    actor_id: int = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service),
) -> UserAccount:
    """Return the profile for the edit form; only the owner may open it."""

    return await service.get_editable_profile(actor_id=actor_id, user_id=user_id)


@router.put("/{user_id}", response_model=UserAccount)
async def edit_profile(
    user_id: int,
    name: str | None = Form(default=None),
    image: UploadFile | None = File(default=None),
    actor_id: int = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service),
) -> UserAccount:
    """Rename the user and optionally replace the avatar."""

    upload = None
    if image is not None and image.filename:
        upload = ImageUpload(
            filename=image.filename,
            content_type=image.content_type or "application/octet-stream",
            data=await image.read(),
        )

    return await service.edit_profile(
        actor_id=actor_id, user_id=user_id, name=name, image=upload
    )
