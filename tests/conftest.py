"""Shared pytest fixtures for test modules."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

from statcast_leaderboards.metrics.deployed import reset_deployed_metric_cache

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove all SLB__ env vars so tests are isolated from the developer's shell."""
    for key in list(os.environ):
        if key.startswith("SLB__"):
            monkeypatch.delenv(key)


@pytest.fixture(autouse=True)
def _reset_deployed_cache() -> Generator[None]:
    reset_deployed_metric_cache()
    yield
    reset_deployed_metric_cache()
