"""Pydantic schemas for user profiles, rankings and account payloads."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

# bcrypt only hashes the first 72 bytes and bcrypt>=5 rejects longer input
PASSWORD_MAX_BYTES = 72


class RestaurantSummary(BaseModel):
    """Restaurant snapshot embedded in profile views."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    tel: str | None = None
    address: str | None = None
    opening_hours: str | None = None
    description: str | None = None
    image: str | None = None


class UserSummary(BaseModel):
    """Public identity fields; the password hash is never serialized."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    image: str | None = None


class UserAccount(UserSummary):
    """Account payload returned after sign-up and profile edits."""

    created_at: datetime
    updated_at: datetime


class UserProfile(UserSummary):
    """A user with social edges and favorites, rendered relative to a viewer."""

    followers: list[UserSummary] = Field(default_factory=list)
    followings: list[UserSummary] = Field(default_factory=list)
    favorited_restaurants: list[RestaurantSummary] = Field(default_factory=list)
    follower_count: int = 0
    following_count: int = 0
    favorited_count: int = 0
    is_followed: bool = Field(
        False, description="True when the viewing user follows this user."
    )


class ProfileView(BaseModel):
    """Aggregated profile page payload."""

    user: UserProfile
    commented_restaurants: list[RestaurantSummary] = Field(
        default_factory=list,
        description="Restaurants the user commented on, deduplicated by id.",
    )


class TopUser(UserSummary):
    """Entry of the follower-count ranking."""

    follower_count: int
    is_followed: bool


class SignUpRequest(BaseModel):
    """Payload accepted by the sign-up endpoint."""

    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)
    password_check: str = Field(...)

    @field_validator("name", "email")
    @classmethod
    def _strip(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Value must not be blank once whitespace is removed")
        return cleaned

    @field_validator("password", "password_check")
    @classmethod
    def _fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
            raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
        return value
