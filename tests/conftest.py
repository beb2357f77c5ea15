"""Shared test fixtures for the screentime test suite."""

from datetime import date, datetime, timezone

import pytest
from PIL import Image

from screentime.config import AppConfig, CacheConfig, PathConfig
from screentime.icons import IconResolver
from screentime.models import ActivityObservation
from screentime.storage.blob_store import FileBlobStore, MemoryBlobStore
from screentime.storage.date_key_cache import DateKeyCache
from screentime.utils import ScreenTimeUtils

# --- Common test data ---

DAY = date(2024, 3, 1)
START_OF_DAY = datetime(2024, 3, 1, 0, 0, 0, tzinfo=timezone.utc)

SAMPLE_OBSERVATIONS = [
    (
        "com.example.app",
        ActivityObservation(
            start=datetime(2024, 3, 1, 9, 0, 0, tzinfo=timezone.utc),
            end=datetime(2024, 3, 1, 9, 2, 5, tzinfo=timezone.utc),
            pickups=3,
        ),
    ),
    ("com.example.mail", ActivityObservation(duration=600.0, notifications=12)),
    ("com.example.maps", {"duration": 42, "sessions": 1}),
]


@pytest.fixture
def paths(tmp_path):
    p = PathConfig(data_dir=tmp_path / "data")
    p.ensure_dirs()
    return p


@pytest.fixture
def app_config(paths):
    return AppConfig(paths=paths, cache=CacheConfig())


@pytest.fixture
def file_store(paths):
    return FileBlobStore(paths.cache_dir)


@pytest.fixture
def cache(file_store):
    """DateKeyCache on a temp directory, UTC keys."""
    return DateKeyCache(file_store)


@pytest.fixture
def memory_cache():
    return DateKeyCache(MemoryBlobStore())


@pytest.fixture
def icons_dir(paths):
    """Icon directory with one PNG and one JPEG icon."""
    d = paths.icons_dir
    d.mkdir(parents=True, exist_ok=True)
    Image.new("RGBA", (16, 16), (255, 0, 0, 255)).save(d / "com.example.app.png")
    Image.new("RGB", (8, 4), (0, 0, 255)).save(d / "com.example.mail.jpg")
    return d


@pytest.fixture
def utils(cache, icons_dir):
    return ScreenTimeUtils(cache=cache, icons=IconResolver(icons_dir))
