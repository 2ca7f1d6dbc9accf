"""Regression tests for the startup database warmup."""

from __future__ import annotations

import logging
from typing import Any
from unittest.mock import AsyncMock

import pytest

import forum.warmup as warmup


class _DummyTransaction:
    """Async context manager handing out a mocked connection."""

    def __init__(self) -> None:
        self.connection: AsyncMock = AsyncMock()

    async def __aenter__(self) -> AsyncMock:
        return self.connection

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> bool:
        return False


@pytest.mark.asyncio
async def test_warmup_database_executes_ping(
    caplog: pytest.LogCaptureFixture, monkeypatch: pytest.MonkeyPatch
) -> None:
    caplog.set_level(logging.INFO)
    dummy_txn = _DummyTransaction()
    sentinel_engine = object()
    captured_engines: list[object] = []

    def _capture_engine(engine: object) -> _DummyTransaction:
        captured_engines.append(engine)
        return dummy_txn

    monkeypatch.setattr(warmup, "begin_engine_transaction", _capture_engine)

    assert await warmup.warmup_database(resolve_engine=lambda: sentinel_engine) is True

    assert captured_engines == [sentinel_engine]
    executed_statement = dummy_txn.connection.execute.await_args.args[0]
    assert str(executed_statement).strip().upper() == "SELECT 1"
    assert not [r for r in caplog.records if r.levelno >= logging.WARNING]


@pytest.mark.asyncio
async def test_warmup_database_logs_failure_without_raising(
    caplog: pytest.LogCaptureFixture, monkeypatch: pytest.MonkeyPatch
) -> None:
    caplog.set_level(logging.INFO)
    dummy_txn = _DummyTransaction()
    dummy_txn.connection.execute.side_effect = ConnectionError("refused")
    monkeypatch.setattr(warmup, "begin_engine_transaction", lambda _: dummy_txn)

    assert await warmup.warmup_database(resolve_engine=lambda: object()) is False

    assert any("warmup failed" in record.getMessage() for record in caplog.records)
