"""Activity record transformer.

Turns one raw usage observation from the OS monitor into one normalized
ActivityRecord. Transformation is pure: the bundle id and day come from the
caller, the usage metrics come from the observation, and nothing is kept
between calls. Aggregating several observations for the same app and day is
left to the caller (see aggregator.merge_records).
"""

import logging
import math
from collections.abc import Mapping
from datetime import date, datetime, timedelta, timezone

from screentime.errors import ValidationError
from screentime.models import ActivityObservation, ActivityRecord
from screentime.storage.date_key_cache import parse_timestamp

logger = logging.getLogger(__name__)

# Raw field aliases accepted from the OS bridge, first match wins.
_DURATION_SECONDS_FIELDS = ("duration", "duration_seconds", "durationSeconds")
_DURATION_MS_FIELDS = ("duration_ms", "totalTimeInForeground")
_START_FIELDS = ("start", "start_time", "startTime")
_END_FIELDS = ("end", "end_time", "endTime")
_PICKUP_FIELDS = ("pickups", "sessions", "launchCount")
_NOTIFICATION_FIELDS = ("notifications", "notification_count")


class ActivityRecordTransformer:
    """Stateless mapper from raw observations to ActivityRecords."""

    def transform(self, observation, bundle_id: str, day_boundary) -> ActivityRecord:
        """
        Transform a single observation.

        Args:
            observation: ActivityObservation, or a raw mapping from the OS bridge
            bundle_id: application identifier, copied into the record as is
            day_boundary: start of the day the observation belongs to
                (date, datetime or ISO 8601 string)

        Returns:
            ActivityRecord for (bundle_id, day)

        Raises:
            ValidationError: negative or malformed duration, bad counters,
                empty bundle id or unparseable day boundary
        """
        if not isinstance(bundle_id, str) or not bundle_id:
            raise ValidationError(f"bundle_id must be a non-empty string, got {bundle_id!r}")
        if isinstance(observation, Mapping):
            observation = observation_from_mapping(observation)
        elif not isinstance(observation, ActivityObservation):
            raise ValidationError(f"Unsupported observation type: {type(observation).__name__}")

        day = record_date(day_boundary)
        duration = _resolve_duration(observation)
        pickups = _check_counter(observation.pickups, "pickups")
        notifications = _check_counter(observation.notifications, "notifications")

        first_used = last_used = None
        if observation.start is not None:
            first_used = observation.start.isoformat()
            end = observation.end
            if end is None:
                try:
                    end = observation.start + timedelta(seconds=duration)
                except OverflowError as exc:
                    raise ValidationError(f"duration {duration!r} runs past the supported date range") from exc
            last_used = end.isoformat()
        elif observation.end is not None:
            last_used = observation.end.isoformat()

        return ActivityRecord(
            bundle_id=bundle_id,
            date=day,
            duration_seconds=duration,
            pickups=pickups,
            notifications=notifications,
            first_used=first_used,
            last_used=last_used,
        )

    def transform_batch(self, observations, bundle_id: str, day_boundary) -> list[ActivityRecord]:
        """Transform several observations for one app; fails on the first bad one."""
        records = [self.transform(obs, bundle_id, day_boundary) for obs in observations]
        logger.debug("Transformed %d observations for %s", len(records), bundle_id)
        return records


def observation_from_mapping(raw: Mapping) -> ActivityObservation:
    """Build an ActivityObservation from a raw bridge dict.

    Numeric timestamps are epoch milliseconds, strings are ISO 8601.
    """
    duration = _first(raw, _DURATION_SECONDS_FIELDS)
    if duration is None:
        duration_ms = _first(raw, _DURATION_MS_FIELDS)
        if duration_ms is not None:
            duration = _as_number(duration_ms, "duration_ms") / 1000.0
    return ActivityObservation(
        start=_parse_instant(_first(raw, _START_FIELDS), "start"),
        end=_parse_instant(_first(raw, _END_FIELDS), "end"),
        duration=duration,
        pickups=_first(raw, _PICKUP_FIELDS),
        notifications=_first(raw, _NOTIFICATION_FIELDS),
    )


def _first(raw: Mapping, names):
    for name in names:
        if raw.get(name) is not None:
            return raw[name]
    return None


def _as_number(value, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise ValidationError(f"{name} must be finite, got {value!r}")
    return float(value)


def _parse_instant(value, name: str) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return parse_timestamp(value)
    millis = _as_number(value, name)
    try:
        return datetime.fromtimestamp(millis / 1000.0, timezone.utc)
    except (OverflowError, OSError, ValueError) as exc:
        raise ValidationError(f"{name} timestamp out of range: {value!r}") from exc


def _resolve_duration(observation: ActivityObservation) -> float:
    if observation.duration is not None:
        duration = _as_number(observation.duration, "duration")
    elif observation.start is not None and observation.end is not None:
        try:
            duration = (observation.end - observation.start).total_seconds()
        except TypeError as exc:  # naive vs aware
            raise ValidationError(f"Cannot compare start and end: {exc}") from exc
    else:
        raise ValidationError("Observation has neither a duration nor a start/end span")
    if duration < 0:
        raise ValidationError(f"Observation duration must be non-negative, got {duration}")
    return duration


def _check_counter(value, name: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer, got {value!r}")
    if value < 0:
        raise ValidationError(f"{name} must be non-negative, got {value}")
    return value


def record_date(day_boundary) -> date:
    """Wall-clock date of a day boundary, with no timezone conversion."""
    if isinstance(day_boundary, str):
        day_boundary = parse_timestamp(day_boundary)
    if isinstance(day_boundary, datetime):
        return day_boundary.date()
    if isinstance(day_boundary, date):
        return day_boundary
    raise ValidationError(f"Unsupported day boundary: {day_boundary!r}")


_default_transformer = ActivityRecordTransformer()


def transform_activity_event(event, bundle_id: str, start_of_day) -> ActivityRecord:
    """Module-level shortcut for ActivityRecordTransformer().transform()."""
    return _default_transformer.transform(event, bundle_id, start_of_day)
