"""Typed queries over the binary engagement relations.

One repository class serves favorites, likes and followships alike. Each
instance is bound to a model and to the names of the two key columns, so the
query shape of every lookup is fixed at construction time instead of being
spelled out as an inline filter literal at each call site.
"""

from __future__ import annotations

import logging
from typing import Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from forum.db.models import Favorite, Followship, Like
from forum.errors import ConflictError

logger = logging.getLogger(__name__)

RelationT = TypeVar("RelationT", Favorite, Like, Followship)

# PostgreSQL unique_violation
UNIQUE_VIOLATION_SQLSTATE = "23505"


def is_unique_violation(exc: IntegrityError) -> bool:
    """True when ``exc`` was raised by a UNIQUE constraint.

    Foreign-key and check-constraint failures are also ``IntegrityError`` but
    do not mean the row already exists.
    """

    if getattr(exc.orig, "sqlstate", None) == UNIQUE_VIOLATION_SQLSTATE:
        return True
    return "unique constraint" in str(exc.orig).lower()


class RelationRepository(Generic[RelationT]):
    """Find, insert and delete rows of a single ``(actor, target)`` relation."""

    def __init__(
        self,
        session: AsyncSession,
        model: type[RelationT],
        *,
        actor_column: str,
        target_column: str,
    ) -> None:
        self._session = session
        self._model = model
        self._actor_column = getattr(model, actor_column)
        self._target_column = getattr(model, target_column)
        self._actor_key = actor_column
        self._target_key = target_column

    @property
    def table_name(self) -> str:
        return self._model.__tablename__

    async def find_relation(self, actor_id: int, target_id: int) -> RelationT | None:
        """Return the row for ``(actor_id, target_id)`` or ``None``."""

        query = select(self._model).where(
            self._actor_column == actor_id,
            self._target_column == target_id,
        )
        result = await self._session.execute(query)
        return result.scalars().one_or_none()

    async def create_relation(self, actor_id: int, target_id: int) -> RelationT:
        """Insert a row, translating a unique-constraint violation into a conflict.

        A concurrent request can insert the same pair between our existence
        check and this flush; the composite unique constraint rejects the
        second insert and the caller sees :class:`ConflictError`.
        """

        relation = self._model(
            **{self._actor_key: actor_id, self._target_key: target_id}
        )
        self._session.add(relation)
        try:
            await self._session.flush()
        except IntegrityError as exc:
            if not is_unique_violation(exc):
                raise
            logger.info(
                "Rejected duplicate %s row (%s=%s, %s=%s)",
                self.table_name,
                self._actor_key,
                actor_id,
                self._target_key,
                target_id,
            )
            raise ConflictError(
                f"Relation already exists in {self.table_name}"
            ) from exc
        return relation

    async def delete_relation(self, relation: RelationT) -> None:
        """Delete exactly one relation row."""

        await self._session.delete(relation)
        await self._session.flush()


def favorites_repository(session: AsyncSession) -> RelationRepository[Favorite]:
    return RelationRepository(
        session, Favorite, actor_column="user_id", target_column="restaurant_id"
    )


def likes_repository(session: AsyncSession) -> RelationRepository[Like]:
    return RelationRepository(
        session, Like, actor_column="user_id", target_column="restaurant_id"
    )


def followships_repository(session: AsyncSession) -> RelationRepository[Followship]:
    return RelationRepository(
        session, Followship, actor_column="follower_id", target_column="following_id"
    )
