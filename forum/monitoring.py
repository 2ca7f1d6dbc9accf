"""Slow query logging for the forum database engine.

Profile pages and the follower ranking issue several selectinload queries per
request; statements slower than ``SLOW_QUERY_THRESHOLD`` are logged with
their duration so regressions surface in the application log.
"""

import logging
import time
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

_START_KEY = "forum_query_start"
MAX_LOGGED_STATEMENT = 500


def summarize_statement(statement: str) -> str:
    """Collapse whitespace and truncate ``statement`` for a single log line."""

    compact = " ".join(statement.split())
    if len(compact) > MAX_LOGGED_STATEMENT:
        return compact[:MAX_LOGGED_STATEMENT] + "..."
    return compact


def setup_query_monitoring(engine: AsyncEngine, *, slow_query_threshold: float) -> None:
    """Attach cursor timing listeners to ``engine``.

    Args:
        engine: Async engine whose ``sync_engine`` receives the listeners.
        slow_query_threshold: Seconds above which a statement is logged.
    """

    sync_engine = engine.sync_engine

    @event.listens_for(sync_engine, "before_cursor_execute")
    def _start_timer(
        conn: Any,
        cursor: Any,
        statement: str,
        parameters: Any,
        context: Any,
        executemany: bool,
    ) -> None:
        conn.info.setdefault(_START_KEY, []).append(time.perf_counter())

    @event.listens_for(sync_engine, "after_cursor_execute")
    def _stop_timer(
        conn: Any,
        cursor: Any,
        statement: str,
        parameters: Any,
        context: Any,
        executemany: bool,
    ) -> None:
        started = conn.info[_START_KEY].pop()
        elapsed = time.perf_counter() - started
        if elapsed <= slow_query_threshold:
            return

        logger.warning(
            "Slow query (%.3fs > %.3fs): %s",
            elapsed,
            slow_query_threshold,
            summarize_statement(statement),
            extra={"duration_seconds": elapsed, "query": statement},
        )

    logger.debug(
        "Query monitoring enabled on %s (threshold %.3fs)",
        sync_engine.url.render_as_string(hide_password=True),
        slow_query_threshold,
    )
