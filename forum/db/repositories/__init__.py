"""Repository layer for the restaurant forum."""

from .relations import (
    RelationRepository,
    favorites_repository,
    followships_repository,
    likes_repository,
)
from .users import UserRepository

__all__ = [
    "RelationRepository",
    "UserRepository",
    "favorites_repository",
    "followships_repository",
    "likes_repository",
]
