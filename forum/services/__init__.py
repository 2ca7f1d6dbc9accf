"""Domain services for the restaurant forum.

Each module contains one service with an explicit constructor taking its
repositories, so callers can wire them against any session.
"""

from .account_service import AccountService
from .engagement_service import EngagementService, build_engagement_service
from .profile_service import ProfileService

__all__ = [
    "AccountService",
    "EngagementService",
    "ProfileService",
    "build_engagement_service",
]
