"""Pytest configuration for turbogha tests."""

from pathlib import Path

import pytest

from fakes import FakeCacheService, make_settings
from turbogha.config import Settings


@pytest.fixture
def remote_settings(tmp_path: Path) -> Settings:
    """Settings with the remote cache configured (pre-signed variant)."""
    return make_settings(tmp_path)


@pytest.fixture
def staged_settings(tmp_path: Path) -> Settings:
    """Settings with the remote cache configured (staged variant)."""
    return make_settings(tmp_path, TURBOGHA_BACKEND="staged")


@pytest.fixture
def fs_settings(tmp_path: Path) -> Settings:
    """Settings without remote credentials (filesystem mode)."""
    return make_settings(tmp_path, ACTIONS_CACHE_URL="", ACTIONS_RUNTIME_TOKEN="")


@pytest.fixture
def fake_service() -> FakeCacheService:
    """In-memory cache service for the pre-signed variant."""
    return FakeCacheService()


@pytest.fixture
def staged_service() -> FakeCacheService:
    """In-memory cache service for the staged variant."""
    return FakeCacheService(staged=True)
