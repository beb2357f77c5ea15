"""Shared data models for the screen-time cache and activity pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any, Literal


@dataclass(frozen=True)
class ActivityObservation:
    """One span of device usage for one app, as reported by the OS monitor.

    Either ``duration`` (seconds) or both ``start`` and ``end`` must be set.
    """

    start: datetime | None = None
    end: datetime | None = None
    duration: float | None = None  # seconds
    pickups: int | None = None
    notifications: int | None = None


@dataclass(frozen=True)
class ActivityRecord:
    """Normalized per-app, per-day usage record. Safe to serialize and cache."""

    bundle_id: str
    date: date
    duration_seconds: float
    pickups: int | None = None
    notifications: int | None = None
    first_used: str | None = None  # ISO 8601
    last_used: str | None = None  # ISO 8601

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["date"] = self.date.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ActivityRecord:
        return cls(
            bundle_id=data["bundle_id"],
            date=date.fromisoformat(data["date"]),
            duration_seconds=float(data["duration_seconds"]),
            pickups=data.get("pickups"),
            notifications=data.get("notifications"),
            first_used=data.get("first_used"),
            last_used=data.get("last_used"),
        )


@dataclass(frozen=True)
class UsageEvent:
    """A single foreground/background transition from the OS event stream."""

    package_name: str
    timestamp_ms: int  # epoch milliseconds
    event_type: Literal["foreground", "background", "other"]


@dataclass
class AppUsageSummary:
    """Today/yesterday usage for one app, built from a stream of UsageEvents."""

    package_name: str
    today_time_ms: int = 0
    yesterday_time_ms: int = 0
    today_sessions: int = 0
    yesterday_sessions: int = 0
    last_time_used_ms: int = 0
    is_restricted: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AppLimit:
    """Daily usage limit for one app."""

    limit_type: Literal["time", "sessions"]
    value: int
    is_enabled: bool = True
