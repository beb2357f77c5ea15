"""Date-keyed cache for daily usage payloads.

Keys are derived from the calendar day of a timestamp in a fixed reference
timezone (UTC unless configured otherwise), so every timestamp on the same
day maps to the same key and different days never collide. Payloads are
opaque bytes; the cache never looks inside them.
"""

import logging
import math
from datetime import date, datetime, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from screentime.config import AppConfig
from screentime.constants import DEFAULT_KEY_PREFIX, DEFAULT_TIMEZONE
from screentime.errors import ValidationError
from screentime.storage.blob_store import BlobStore, FileBlobStore, MemoryBlobStore

logger = logging.getLogger(__name__)


def resolve_timezone(tz: str | tzinfo) -> tzinfo:
    """Turn an IANA name (or an existing tzinfo) into a tzinfo."""
    if isinstance(tz, tzinfo):
        return tz
    if not isinstance(tz, str):
        raise ValidationError(f"Timezone must be an IANA name or tzinfo, got {tz!r}")
    if tz.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValidationError(f"Unknown timezone: {tz!r}") from exc


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 date or datetime string, accepting a trailing Z."""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        raise ValidationError(f"Not an ISO 8601 timestamp: {value!r}") from exc


def calendar_day(value, tz: tzinfo = timezone.utc) -> date:
    """Calendar day of ``value`` in ``tz``.

    Aware datetimes and POSIX timestamps are converted to ``tz`` first.
    Naive datetimes and plain dates are taken as already local to ``tz``.
    """
    if isinstance(value, str):
        value = parse_timestamp(value)
    if isinstance(value, datetime):
        if value.utcoffset() is not None:
            value = value.astimezone(tz)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if not math.isfinite(value):
            raise ValidationError(f"Timestamp must be finite, got {value!r}")
        try:
            return datetime.fromtimestamp(value, tz).date()
        except (OverflowError, OSError, ValueError) as exc:
            raise ValidationError(f"Timestamp out of range: {value!r}") from exc
    raise ValidationError(f"Unsupported date value: {value!r}")


def derive_cache_key(value, tz: tzinfo = timezone.utc, prefix: str = DEFAULT_KEY_PREFIX) -> str:
    """Cache key for the calendar day containing ``value``."""
    return f"{prefix}{calendar_day(value, tz).isoformat()}"


class DateKeyCache:
    """Key derivation plus get/put over an injected BlobStore."""

    def __init__(
        self,
        store: BlobStore,
        timezone: str | tzinfo = DEFAULT_TIMEZONE,
        key_prefix: str = DEFAULT_KEY_PREFIX,
    ):
        self.store = store
        self.tz = resolve_timezone(timezone)
        self.key_prefix = key_prefix

    @classmethod
    def from_config(cls, config: AppConfig):
        """Build a cache on the configured backend."""
        if config.cache.backend == "memory":
            store = MemoryBlobStore()
        elif config.cache.backend == "file":
            store = FileBlobStore(config.paths.cache_dir)
        else:
            raise ValidationError(f"Unknown cache backend: {config.cache.backend!r}")
        return cls(store, timezone=config.cache.timezone, key_prefix=config.cache.key_prefix)

    def derive_key(self, value) -> str:
        return derive_cache_key(value, self.tz, self.key_prefix)

    def get(self, key: str) -> bytes | None:
        """Stored payload for ``key``, or None when nothing was written."""
        _check_key(key)
        payload = self.store.read(key)
        logger.debug("Cache %s for %s", "hit" if payload is not None else "miss", key)
        return payload

    def put(self, key: str, payload: bytes) -> None:
        """Store ``payload`` under ``key``, replacing any previous entry."""
        _check_key(key)
        if not isinstance(payload, (bytes, bytearray, memoryview)):
            raise ValidationError(f"Payload must be bytes, got {type(payload).__name__}")
        data = bytes(payload)
        self.store.write(key, data)
        logger.debug("Cached %d bytes under %s", len(data), key)

    def get_for_date(self, value) -> bytes | None:
        return self.get(self.derive_key(value))

    def put_for_date(self, value, payload: bytes) -> str:
        key = self.derive_key(value)
        self.put(key, payload)
        return key


def _check_key(key):
    if not isinstance(key, str):
        raise ValidationError(f"Cache key must be a string, got {type(key).__name__}")
