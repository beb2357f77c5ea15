"""Tests for screentime.activity.transformer: observation -> ActivityRecord."""

from datetime import date, datetime, timedelta, timezone

import pytest

from screentime.activity.transformer import (
    ActivityRecordTransformer,
    observation_from_mapping,
    transform_activity_event,
)
from screentime.errors import ValidationError
from screentime.models import ActivityObservation, ActivityRecord

UTC = timezone.utc
START_OF_DAY = datetime(2024, 3, 1, tzinfo=UTC)


@pytest.fixture
def transformer():
    return ActivityRecordTransformer()


class TestTransform:
    def test_duration_scenario(self, transformer):
        """125 s for com.example.app on 2024-03-01."""
        record = transformer.transform(ActivityObservation(duration=125), "com.example.app", START_OF_DAY)
        assert record.bundle_id == "com.example.app"
        assert record.date == date(2024, 3, 1)
        assert record.duration_seconds == 125
        assert record.to_dict() == {
            "bundle_id": "com.example.app",
            "date": "2024-03-01",
            "duration_seconds": 125.0,
            "pickups": None,
            "notifications": None,
            "first_used": None,
            "last_used": None,
        }

    def test_deterministic(self, transformer):
        obs = ActivityObservation(
            start=datetime(2024, 3, 1, 8, 0, tzinfo=UTC),
            end=datetime(2024, 3, 1, 8, 30, tzinfo=UTC),
            pickups=4,
            notifications=2,
        )
        first = transformer.transform(obs, "com.example.app", START_OF_DAY)
        second = transformer.transform(obs, "com.example.app", START_OF_DAY)
        assert first == second
        assert hash(first) == hash(second)

    def test_span_gives_duration_and_bounds(self, transformer):
        obs = ActivityObservation(
            start=datetime(2024, 3, 1, 8, 0, tzinfo=UTC),
            end=datetime(2024, 3, 1, 8, 2, 5, tzinfo=UTC),
        )
        record = transformer.transform(obs, "com.example.app", START_OF_DAY)
        assert record.duration_seconds == 125
        assert record.first_used == "2024-03-01T08:00:00+00:00"
        assert record.last_used == "2024-03-01T08:02:05+00:00"

    def test_duration_wins_over_span(self, transformer):
        obs = ActivityObservation(
            start=datetime(2024, 3, 1, 8, 0, tzinfo=UTC),
            end=datetime(2024, 3, 1, 9, 0, tzinfo=UTC),
            duration=60,
        )
        assert transformer.transform(obs, "a", START_OF_DAY).duration_seconds == 60

    def test_last_used_derived_from_start_and_duration(self, transformer):
        obs = ActivityObservation(start=datetime(2024, 3, 1, 8, 0, tzinfo=UTC), duration=90)
        record = transformer.transform(obs, "a", START_OF_DAY)
        assert record.last_used == (datetime(2024, 3, 1, 8, 0, tzinfo=UTC) + timedelta(seconds=90)).isoformat()

    def test_date_comes_from_day_boundary_not_observation(self, transformer):
        obs = ActivityObservation(
            start=datetime(2024, 2, 29, 23, 0, tzinfo=UTC),
            end=datetime(2024, 2, 29, 23, 10, tzinfo=UTC),
        )
        assert transformer.transform(obs, "a", START_OF_DAY).date == date(2024, 3, 1)

    def test_day_boundary_in_local_offset_keeps_its_own_date(self, transformer):
        local_midnight = datetime(2024, 3, 1, tzinfo=timezone(timedelta(hours=2)))
        record = transformer.transform(ActivityObservation(duration=1), "a", local_midnight)
        assert record.date == date(2024, 3, 1)

    @pytest.mark.parametrize("boundary", [date(2024, 3, 1), "2024-03-01", "2024-03-01T00:00:00Z"])
    def test_day_boundary_forms(self, transformer, boundary):
        assert transformer.transform(ActivityObservation(duration=1), "a", boundary).date == date(2024, 3, 1)

    def test_zero_duration_is_valid(self, transformer):
        assert transformer.transform(ActivityObservation(duration=0), "a", START_OF_DAY).duration_seconds == 0

    def test_does_not_mutate_mapping(self, transformer):
        raw = {"duration": 30, "pickups": 2}
        transformer.transform(raw, "a", START_OF_DAY)
        assert raw == {"duration": 30, "pickups": 2}

    def test_batch(self, transformer):
        records = transformer.transform_batch([{"duration": 1}, {"duration": 2}], "a", START_OF_DAY)
        assert [r.duration_seconds for r in records] == [1, 2]

    def test_module_level_shortcut(self):
        record = transform_activity_event({"duration": 125}, "com.example.app", START_OF_DAY)
        assert record == ActivityRecord("com.example.app", date(2024, 3, 1), 125.0)


class TestValidation:
    def test_negative_duration(self, transformer):
        with pytest.raises(ValidationError):
            transformer.transform(ActivityObservation(duration=-1), "com.example.app", START_OF_DAY)

    def test_end_before_start(self, transformer):
        obs = ActivityObservation(
            start=datetime(2024, 3, 1, 9, 0, tzinfo=UTC),
            end=datetime(2024, 3, 1, 8, 0, tzinfo=UTC),
        )
        with pytest.raises(ValidationError):
            transformer.transform(obs, "a", START_OF_DAY)

    @pytest.mark.parametrize("duration", [float("nan"), float("inf"), "125", True])
    def test_malformed_duration(self, transformer, duration):
        with pytest.raises(ValidationError):
            transformer.transform(ActivityObservation(duration=duration), "a", START_OF_DAY)

    def test_duration_past_date_range(self, transformer):
        obs = ActivityObservation(start=datetime(2024, 3, 1, tzinfo=UTC), duration=1e20)
        with pytest.raises(ValidationError):
            transformer.transform(obs, "a", "2024-03-01")

    def test_huge_duration_without_start_is_kept(self, transformer):
        assert transformer.transform(ActivityObservation(duration=1e20), "a", START_OF_DAY).duration_seconds == 1e20

    def test_no_duration_information(self, transformer):
        with pytest.raises(ValidationError):
            transformer.transform(ActivityObservation(start=datetime(2024, 3, 1, tzinfo=UTC)), "a", START_OF_DAY)

    def test_naive_and_aware_span(self, transformer):
        obs = ActivityObservation(start=datetime(2024, 3, 1, 8, 0), end=datetime(2024, 3, 1, 9, 0, tzinfo=UTC))
        with pytest.raises(ValidationError):
            transformer.transform(obs, "a", START_OF_DAY)

    @pytest.mark.parametrize("pickups", [-1, 2.5, "3"])
    def test_bad_counters(self, transformer, pickups):
        with pytest.raises(ValidationError):
            transformer.transform(ActivityObservation(duration=1, pickups=pickups), "a", START_OF_DAY)

    @pytest.mark.parametrize("bundle_id", ["", None, 42])
    def test_bad_bundle_id(self, transformer, bundle_id):
        with pytest.raises(ValidationError):
            transformer.transform(ActivityObservation(duration=1), bundle_id, START_OF_DAY)

    def test_bad_day_boundary(self, transformer):
        with pytest.raises(ValidationError):
            transformer.transform(ActivityObservation(duration=1), "a", 20240301)

    def test_unsupported_observation(self, transformer):
        with pytest.raises(ValidationError):
            transformer.transform([125], "a", START_OF_DAY)

    def test_validation_error_is_value_error(self, transformer):
        with pytest.raises(ValueError):
            transformer.transform({"duration": -5}, "a", START_OF_DAY)


class TestObservationFromMapping:
    def test_android_style_fields(self):
        obs = observation_from_mapping({"totalTimeInForeground": 125000, "launchCount": 7})
        assert obs.duration == 125.0
        assert obs.pickups == 7

    def test_epoch_millis_and_iso(self):
        obs = observation_from_mapping({"startTime": 1709280000000, "end": "2024-03-01T08:01:00Z"})
        assert obs.start == datetime(2024, 3, 1, 8, 0, tzinfo=UTC)
        assert obs.end == datetime(2024, 3, 1, 8, 1, tzinfo=UTC)

    def test_seconds_field_wins_over_millis(self):
        obs = observation_from_mapping({"duration": 5, "duration_ms": 9000})
        assert obs.duration == 5

    def test_bad_timestamp(self):
        with pytest.raises(ValidationError):
            observation_from_mapping({"start": "yesterday-ish"})
