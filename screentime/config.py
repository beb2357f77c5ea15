"""Configuration dataclasses for the screentime layer.

Replaces module-level globals with type-safe, testable config objects.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from screentime.constants import DEFAULT_KEY_PREFIX, DEFAULT_TIMEZONE
from screentime.errors import ValidationError


@dataclass
class PathConfig:
    """All data directory paths. Single source of truth for file locations."""
    data_dir: Path = field(default_factory=lambda: Path.home() / ".screentime")
    icons_override: Path | None = None

    @property
    def cache_dir(self) -> Path:
        return self.data_dir / "cache"

    @property
    def icons_dir(self) -> Path:
        if self.icons_override is not None:
            return self.icons_override
        return self.data_dir / "icons"

    @property
    def db_path(self) -> Path:
        return self.data_dir / "screentime.db"

    def ensure_dirs(self):
        """Create all required directories."""
        for d in [self.data_dir, self.cache_dir]:
            d.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_env(cls):
        data_dir = os.environ.get("SCREENTIME_DATA_DIR")
        icons_dir = os.environ.get("SCREENTIME_ICONS_DIR")
        return cls(
            data_dir=Path(data_dir).expanduser() if data_dir else Path.home() / ".screentime",
            icons_override=Path(icons_dir).expanduser() if icons_dir else None,
        )


@dataclass
class CacheConfig:
    """Cache key derivation and backend selection."""
    key_prefix: str = DEFAULT_KEY_PREFIX
    timezone: str = DEFAULT_TIMEZONE  # IANA name; day boundaries for keys are taken here
    backend: str = "file"  # "file" or "memory"; the async SQLite cache reads paths.db_path

    @classmethod
    def from_env(cls):
        return cls(
            key_prefix=os.environ.get("SCREENTIME_KEY_PREFIX", DEFAULT_KEY_PREFIX),
            timezone=os.environ.get("SCREENTIME_TZ", DEFAULT_TIMEZONE),
            backend=os.environ.get("SCREENTIME_BACKEND", "file"),
        )


@dataclass
class UsageConfig:
    """Usage summarization settings."""
    lookback_days: int = 7  # default window for the history command

    @classmethod
    def from_env(cls):
        raw = os.environ.get("SCREENTIME_LOOKBACK_DAYS")
        if raw is None:
            return cls()
        try:
            days = int(raw)
        except ValueError as exc:
            raise ValidationError(f"SCREENTIME_LOOKBACK_DAYS must be an integer, got {raw!r}") from exc
        if days < 1:
            raise ValidationError(f"SCREENTIME_LOOKBACK_DAYS must be at least 1, got {days}")
        return cls(lookback_days=days)


@dataclass
class AppConfig:
    """Top-level config composing all sub-configs."""
    paths: PathConfig = field(default_factory=PathConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    usage: UsageConfig = field(default_factory=UsageConfig)

    @classmethod
    def from_env(cls):
        """Create config from environment variables (for production use)."""
        return cls(
            paths=PathConfig.from_env(),
            cache=CacheConfig.from_env(),
            usage=UsageConfig.from_env(),
        )
