"""Shared pytest fixtures."""
import os
import sys
from unittest.mock import MagicMock

import pytest

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from orchestrator.config import Settings
from orchestrator.media_store import MediaStore
from tests.fakes import make_client


@pytest.fixture
def test_settings(tmp_path):
    """Settings with defaults, independent of any local .env overrides."""
    return Settings(
        _env_file=None,
        GEMINI_API_KEY="test-key",
        MEDIA_CACHE_DIR=str(tmp_path / "media"),
        VIDEO_POLL_INTERVAL=5.0,
        VIDEO_POLL_MAX_ATTEMPTS=120,
        VIDEO_POLL_TIMEOUT=None,
    )


@pytest.fixture
def mock_client():
    """Generation client whose upstream calls are AsyncMocks."""
    return make_client()


@pytest.fixture
def media_store(tmp_path):
    store = MediaStore(cache_dir=str(tmp_path / "media"), ttl=None)
    yield store
    store.close()


@pytest.fixture
def mock_media_store():
    store = MagicMock(spec=MediaStore)
    store.put.return_value = "media-1"
    return store
