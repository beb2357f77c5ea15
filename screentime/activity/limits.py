"""Per-app daily usage limits and the restriction check used by summaries."""

import logging

from screentime.constants import LIMIT_SESSIONS, LIMIT_TIME, LIMIT_TYPES
from screentime.errors import ValidationError
from screentime.models import AppLimit, AppUsageSummary

logger = logging.getLogger(__name__)


class AppLimitRegistry:
    """In-memory map of package name -> AppLimit."""

    def __init__(self):
        self._limits: dict[str, AppLimit] = {}

    def __len__(self):
        return len(self._limits)

    def set_limit(self, package_name: str, limit_type: str, value: int, is_enabled: bool = True) -> AppLimit:
        """Set (or replace) the limit for a package.

        Args:
            package_name: app package / bundle id
            limit_type: "time" (minutes per day) or "sessions" (per day)
            value: non-negative limit value
            is_enabled: disabled limits are kept but never restrict
        """
        if limit_type not in LIMIT_TYPES:
            raise ValidationError(f"Unknown limit type {limit_type!r}, expected one of {sorted(LIMIT_TYPES)}")
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationError(f"Limit value must be a non-negative integer, got {value!r}")
        limit = AppLimit(limit_type=limit_type, value=value, is_enabled=is_enabled)
        self._limits[package_name] = limit
        logger.debug("Set %s limit for %s: %d", limit_type, package_name, value)
        return limit

    def get_limit(self, package_name: str) -> AppLimit | None:
        return self._limits.get(package_name)

    def remove_limit(self, package_name: str) -> bool:
        """Drop the limit for a package. Returns True if one was set."""
        return self._limits.pop(package_name, None) is not None

    def is_restricted(self, summary: AppUsageSummary) -> bool:
        """True once today's usage has reached the package's enabled limit."""
        limit = self._limits.get(summary.package_name)
        if limit is None or not limit.is_enabled:
            return False
        if limit.limit_type == LIMIT_TIME:
            return summary.today_time_ms >= limit.value * 60 * 1000
        if limit.limit_type == LIMIT_SESSIONS:
            return summary.today_sessions >= limit.value
        return False

    def to_dict(self) -> dict:
        return {
            name: {"type": limit.limit_type, "value": limit.value, "is_enabled": limit.is_enabled}
            for name, limit in sorted(self._limits.items())
        }

    @classmethod
    def from_dict(cls, data: dict):
        registry = cls()
        for name, entry in data.items():
            registry.set_limit(name, entry["type"], entry["value"], entry.get("is_enabled", True))
        return registry
