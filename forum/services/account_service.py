"""Account creation with bcrypt password hashing."""

from __future__ import annotations

import logging

import bcrypt

from forum.db.repositories import UserRepository
from forum.errors import ConflictError, InvalidOperationError
from forum.schemas.users import SignUpRequest, UserAccount

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 10


def hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode(), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode()


class AccountService:
    def __init__(self, *, users: UserRepository) -> None:
        self._users = users

    async def sign_up(self, payload: SignUpRequest) -> UserAccount:
        """Create a user after checking the confirmation and email uniqueness."""

        if payload.password != payload.password_check:
            raise InvalidOperationError("Passwords do not match!")
        if await self._users.find_by_email(payload.email) is not None:
            raise ConflictError("User already exists!")

        user = await self._users.create_user(
            name=payload.name,
            email=payload.email,
            password_hash=hash_password(payload.password),
        )
        logger.info("Registered user %s", user.id)
        return UserAccount.model_validate(user)
