"""Shared constants used across the storage and activity layers."""

DEFAULT_KEY_PREFIX: str = "usage-"
DEFAULT_TIMEZONE: str = "UTC"

# Bumped when the encoded record layout changes.
RECORD_FORMAT_VERSION: int = 1

EVENT_FOREGROUND: str = "foreground"
EVENT_BACKGROUND: str = "background"

LIMIT_TIME: str = "time"  # minutes of foreground time per day
LIMIT_SESSIONS: str = "sessions"  # foreground sessions per day
LIMIT_TYPES: frozenset[str] = frozenset({LIMIT_TIME, LIMIT_SESSIONS})

# Lookback window in days for each named reporting period.
PERIOD_DAYS: dict[str, int] = {
    "today": 0,
    "yesterday": 1,
    "week": 7,
    "twoWeeks": 14,
    "threeWeeks": 21,
    "month": 30,
}

ICON_EXTENSIONS: tuple[str, ...] = ("png", "jpg", "jpeg", "webp", "ico")
