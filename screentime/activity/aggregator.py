"""Usage aggregation helpers for callers of the transformer.

summarize_usage_events() replays a foreground/background event stream into
today/yesterday totals per app. merge_records() folds several normalized
records for the same (bundle_id, day) into one. Neither is applied
implicitly by the transformer or the cache.
"""

import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime, time, timedelta, timezone, tzinfo

from screentime.activity.limits import AppLimitRegistry
from screentime.constants import EVENT_BACKGROUND, EVENT_FOREGROUND, PERIOD_DAYS
from screentime.errors import ValidationError
from screentime.models import ActivityRecord, AppUsageSummary, UsageEvent

logger = logging.getLogger(__name__)

# Android UsageEvents.Event constants
_ANDROID_EVENT_TYPES = {1: EVENT_FOREGROUND, 2: EVENT_BACKGROUND}


def usage_event_from_mapping(raw: Mapping) -> UsageEvent:
    """Build a UsageEvent from a bridge dict (packageName, timeStamp, eventType).

    Numeric event types follow Android (1 = foreground, 2 = background);
    anything else is kept as "other" and only counts toward last use.
    """
    package = raw.get("package_name") or raw.get("packageName")
    timestamp = raw.get("timestamp_ms", raw.get("timeStamp"))
    if not package or isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
        raise ValidationError(f"Usage event needs a package name and numeric timestamp: {dict(raw)!r}")
    event_type = raw.get("event_type", raw.get("eventType"))
    if isinstance(event_type, int):
        event_type = _ANDROID_EVENT_TYPES.get(event_type, "other")
    elif event_type not in (EVENT_FOREGROUND, EVENT_BACKGROUND):
        event_type = "other"
    return UsageEvent(package_name=package, timestamp_ms=int(timestamp), event_type=event_type)


def _midnight_ms(day: date, tz: tzinfo) -> int:
    return int(datetime.combine(day, time(0), tzinfo=tz).timestamp() * 1000)


def summarize_usage_events(
    events: Iterable[UsageEvent],
    now: datetime,
    tz: tzinfo = timezone.utc,
    limits: AppLimitRegistry | None = None,
) -> list[AppUsageSummary]:
    """Replay an ordered event stream into per-app today/yesterday usage.

    A foreground event opens a session (counted once until the app goes to
    the background) under today or yesterday by its timestamp. A background
    event closes it and books the elapsed time under the day of the
    background timestamp. Activity before yesterday only moves last use.

    Args:
        events: UsageEvents in timestamp order
        now: reference instant; naive values are taken as local to ``tz``
        tz: timezone whose midnights split today from yesterday
        limits: optional registry used to flag restricted apps

    Returns:
        Summaries for apps with any time today or yesterday, most used first
    """
    if now.utcoffset() is None:
        now = now.replace(tzinfo=tz)
    today = now.astimezone(tz).date()
    today_start = _midnight_ms(today, tz)
    yesterday_start = _midnight_ms(today - timedelta(days=1), tz)

    summaries: dict[str, AppUsageSummary] = {}
    foreground_at: dict[str, int] = {}
    active: set[str] = set()
    count = 0

    for event in events:
        count += 1
        package = event.package_name
        ts = event.timestamp_ms
        usage = summaries.setdefault(package, AppUsageSummary(package_name=package))

        if event.event_type == EVENT_FOREGROUND:
            if package not in active:
                if ts >= today_start:
                    usage.today_sessions += 1
                elif ts >= yesterday_start:
                    usage.yesterday_sessions += 1
                active.add(package)
            foreground_at[package] = ts
        elif event.event_type == EVENT_BACKGROUND:
            started = foreground_at.pop(package, 0)
            if started > 0:
                elapsed = ts - started
                if elapsed > 0:
                    if ts >= today_start:
                        usage.today_time_ms += elapsed
                    elif ts >= yesterday_start:
                        usage.yesterday_time_ms += elapsed
                active.discard(package)

        usage.last_time_used_ms = max(usage.last_time_used_ms, ts)

    result = [s for s in summaries.values() if s.today_time_ms > 0 or s.yesterday_time_ms > 0]
    if limits is not None:
        for summary in result:
            summary.is_restricted = limits.is_restricted(summary)
    result.sort(key=lambda s: (-s.today_time_ms, -s.yesterday_time_ms, s.package_name))
    logger.debug("Summarized %d events into %d apps", count, len(result))
    return result


def merge_records(records: Iterable[ActivityRecord]) -> list[ActivityRecord]:
    """Sum records sharing (bundle_id, date). Output sorted by (date, bundle_id)."""
    merged: dict[tuple[str, date], ActivityRecord] = {}
    for record in records:
        key = (record.bundle_id, record.date)
        prior = merged.get(key)
        if prior is None:
            merged[key] = record
            continue
        merged[key] = ActivityRecord(
            bundle_id=record.bundle_id,
            date=record.date,
            duration_seconds=prior.duration_seconds + record.duration_seconds,
            pickups=_sum_optional(prior.pickups, record.pickups),
            notifications=_sum_optional(prior.notifications, record.notifications),
            first_used=_pick_instant(prior.first_used, record.first_used, min),
            last_used=_pick_instant(prior.last_used, record.last_used, max),
        )
    return [merged[key] for key in sorted(merged, key=lambda k: (k[1], k[0]))]


def _sum_optional(a, b):
    if a is None:
        return b
    if b is None:
        return a
    return a + b


def _pick_instant(a: str | None, b: str | None, choose):
    if a is None:
        return b
    if b is None:
        return a
    return choose(a, b, key=datetime.fromisoformat)


def format_time(ms: int) -> str:
    """Render milliseconds as "2h 5m" or "45m"."""
    minutes = int(ms) // 60000
    hours = minutes // 60
    return f"{hours}h {minutes % 60}m" if hours > 0 else f"{minutes}m"


def time_range_for_period(period: str, now: datetime) -> tuple[datetime, datetime]:
    """(start, end) for a named reporting period ending at ``now``.

    Starts fall on midnight in ``now``'s own timezone. "yesterday" ends at
    today's midnight; unknown names fall back to "today".
    """
    days = PERIOD_DAYS.get(period, 0)
    today_start = datetime.combine(now.date(), time(0), tzinfo=now.tzinfo)
    start = today_start - timedelta(days=days)
    end = today_start if period == "yesterday" else now
    return start, end
