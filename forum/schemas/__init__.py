"""Pydantic schemas shared by the services and the API layer."""

from .error import ErrorResponse, ErrorType, ValidationErrorDetail, ValidationErrorResponse
from .users import (
    ProfileView,
    RestaurantSummary,
    SignUpRequest,
    TopUser,
    UserAccount,
    UserProfile,
    UserSummary,
)

__all__ = [
    "ErrorResponse",
    "ErrorType",
    "ProfileView",
    "RestaurantSummary",
    "SignUpRequest",
    "TopUser",
    "UserAccount",
    "UserProfile",
    "UserSummary",
    "ValidationErrorDetail",
    "ValidationErrorResponse",
]
