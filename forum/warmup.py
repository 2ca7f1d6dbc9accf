"""Startup warmup so the first request does not pay for connection setup."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from forum.db.connection import begin_engine_transaction

logger = logging.getLogger(__name__)


async def warmup_database(
    resolve_engine: Callable[[], AsyncEngine] | None = None,
) -> bool:
    """Open one transaction and run ``SELECT 1`` against the shared engine.

    Failures are logged and reported through the return value; the API still
    starts so ``/health`` can answer while the database recovers.
    """

    if resolve_engine is None:
        from forum.db.connection import get_engine as resolve_engine

    start = time.perf_counter()
    try:
        engine = resolve_engine()
        async with begin_engine_transaction(engine) as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:
        logger.warning("Database warmup failed: %s", exc)
        return False

    elapsed = (time.perf_counter() - start) * 1000
    logger.info("Database connection warmed up (%.0fms)", elapsed)
    return True
