"""Pytest fixtures for pagesync tests."""
from __future__ import annotations

import pytest

from pagesync.config import SyncConfig
from tests.fakes import FakePage


@pytest.fixture
def page() -> FakePage:
    return FakePage()


@pytest.fixture
def fast_config() -> SyncConfig:
    return SyncConfig(settle_delay_ms=0)
