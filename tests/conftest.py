"""Pytest configuration for the forum test-suite.

Environment overrides are applied at import time, before any test module
imports :mod:`forum.settings` and freezes the cached settings singleton.
"""

from __future__ import annotations

import os
import tempfile

import pytest

from tests import _ensure_repo_on_path

os.environ.setdefault("USE_SQLITE", "1")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="forum-uploads-"))
os.environ.pop("IMGUR_CLIENT_ID", None)


def pytest_configure(config: pytest.Config) -> None:
    """Hook executed by pytest prior to running any tests."""

    _ensure_repo_on_path()
