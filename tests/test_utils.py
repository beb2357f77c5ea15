"""Tests for screentime.utils: the exposed API surface and day pipeline."""

from datetime import date, datetime, timedelta, timezone

import pytest

import screentime.utils as st
from screentime.activity.codec import decode_records
from screentime.config import AppConfig, CacheConfig, PathConfig
from screentime.errors import ValidationError
from screentime.models import ActivityObservation
from screentime.storage.blob_store import FileBlobStore
from tests.conftest import SAMPLE_OBSERVATIONS, START_OF_DAY

UTC = timezone.utc


class TestScreenTimeUtils:
    def test_cache_surface(self, utils):
        key = utils.cache_key_for_date(datetime(2024, 3, 1, 15, 30, tzinfo=UTC))
        assert key == "usage-2024-03-01"
        assert utils.cached_data(key) is None
        utils.cache_data(b"blob", key)
        assert utils.cached_data(key) == b"blob"

    def test_transform_surface(self, utils):
        record = utils.transform_activity_event({"duration": 125}, "com.example.app", START_OF_DAY)
        assert (record.bundle_id, record.date, record.duration_seconds) == ("com.example.app", date(2024, 3, 1), 125)

    def test_icon_surface(self, utils):
        assert utils.app_icon("com.example.app").size == (16, 16)
        assert utils.base64_icon("com.example.app")
        assert utils.app_icon("com.example.none") is None
        assert utils.base64_icon("com.example.none") is None

    def test_store_and_load_day(self, utils):
        key = utils.store_day(SAMPLE_OBSERVATIONS, START_OF_DAY)
        assert key == "usage-2024-03-01"
        records = utils.load_day(date(2024, 3, 1))
        assert [r.bundle_id for r in records] == ["com.example.app", "com.example.mail", "com.example.maps"]
        assert [r.duration_seconds for r in records] == [125, 600, 42]
        assert records[0].pickups == 3
        assert records[1].notifications == 12
        assert records[2].pickups == 1

    def test_load_unknown_day(self, utils):
        assert utils.load_day(date(2030, 1, 1)) is None

    def test_bad_observation_leaves_existing_day_untouched(self, utils):
        utils.store_day(SAMPLE_OBSERVATIONS, START_OF_DAY)
        before = utils.cached_data("usage-2024-03-01")
        bad = SAMPLE_OBSERVATIONS + [("com.example.bad", ActivityObservation(duration=-3))]
        with pytest.raises(ValidationError):
            utils.store_day(bad, START_OF_DAY)
        assert utils.cached_data("usage-2024-03-01") == before
        assert len(decode_records(before)) == 3

    def test_restore_same_day_overwrites(self, utils):
        utils.store_day(SAMPLE_OBSERVATIONS, START_OF_DAY)
        utils.store_day([("com.example.app", {"duration": 1})], START_OF_DAY)
        assert [r.duration_seconds for r in utils.load_day(START_OF_DAY)] == [1]

    def test_offset_boundary_keys_to_record_date(self, utils):
        local_midnight = datetime(2024, 3, 1, tzinfo=timezone(timedelta(hours=2)))
        key = utils.store_day([("com.example.app", {"duration": 5})], local_midnight)
        assert key == "usage-2024-03-01"
        records = utils.load_day(date(2024, 3, 1))
        assert [r.date for r in records] == [date(2024, 3, 1)]
        assert utils.load_day(date(2024, 2, 29)) is None

    def test_offset_boundaries_on_consecutive_days_do_not_overwrite(self, utils):
        plus_two = timezone(timedelta(hours=2))
        utils.store_day([("com.example.app", {"duration": 5})], datetime(2024, 3, 1, tzinfo=plus_two))
        utils.store_day([("com.example.app", {"duration": 7})], datetime(2024, 3, 2, tzinfo=plus_two))
        assert utils.load_day(date(2024, 3, 1))[0].duration_seconds == 5
        assert utils.load_day(date(2024, 3, 2))[0].duration_seconds == 7

    def test_load_days_skips_missing_and_sorts(self, utils):
        utils.store_day([("com.b", {"duration": 2}), ("com.a", {"duration": 1})], date(2024, 3, 3))
        utils.store_day(SAMPLE_OBSERVATIONS, START_OF_DAY)
        records = utils.load_days(date(2024, 2, 28), "2024-03-05")
        assert [(r.date.isoformat(), r.bundle_id) for r in records] == [
            ("2024-03-01", "com.example.app"),
            ("2024-03-01", "com.example.mail"),
            ("2024-03-01", "com.example.maps"),
            ("2024-03-03", "com.a"),
            ("2024-03-03", "com.b"),
        ]
        assert utils.load_days(date(2024, 4, 1), date(2024, 4, 2)) == []

    def test_load_days_reversed_range(self, utils):
        with pytest.raises(ValidationError):
            utils.load_days(date(2024, 3, 2), date(2024, 3, 1))


class TestModuleLevelApi:
    @pytest.fixture(autouse=True)
    def default_utils(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SCREENTIME_DATA_DIR", str(tmp_path / "env-data"))
        monkeypatch.delenv("SCREENTIME_TZ", raising=False)
        monkeypatch.delenv("SCREENTIME_KEY_PREFIX", raising=False)
        monkeypatch.delenv("SCREENTIME_BACKEND", raising=False)
        monkeypatch.delenv("SCREENTIME_LOOKBACK_DAYS", raising=False)
        st.set_default_utils(None)
        yield
        st.set_default_utils(None)

    def test_default_built_from_env(self, tmp_path):
        utils = st.get_default_utils()
        assert isinstance(utils.cache.store, FileBlobStore)
        assert utils.cache.store.root == tmp_path / "env-data" / "cache"
        assert st.get_default_utils() is utils

    def test_functions_delegate(self):
        key = st.cache_key_for_date("2024-03-01T23:59:59Z")
        st.cache_data(b"abc", key)
        assert st.cached_data(key) == b"abc"
        assert st.cached_data("key-B") is None
        assert st.transform_activity_event({"duration": 2}, "a", "2024-03-01").duration_seconds == 2
        assert st.app_icon("com.example.app") is None
        assert st.base64_icon("com.example.app") is None

    def test_set_default(self, tmp_path):
        config = AppConfig(paths=PathConfig(data_dir=tmp_path), cache=CacheConfig(backend="memory", key_prefix="x-"))
        st.set_default_utils(st.ScreenTimeUtils.from_config(config))
        assert st.cache_key_for_date(date(2024, 3, 1)) == "x-2024-03-01"
