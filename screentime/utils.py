"""ScreenTimeUtils: the API surface exposed to the application layer.

One stateless service object wires the date-keyed cache, the activity
transformer and the icon resolver together. Module-level functions with the
same names delegate to a default instance built from the environment.
"""

import logging
from datetime import timedelta

from screentime.activity.aggregator import merge_records
from screentime.activity.codec import decode_records, encode_records
from screentime.activity.transformer import ActivityRecordTransformer, record_date
from screentime.config import AppConfig
from screentime.errors import ValidationError
from screentime.icons import IconResolver
from screentime.models import ActivityRecord
from screentime.storage.date_key_cache import DateKeyCache

logger = logging.getLogger(__name__)


class ScreenTimeUtils:
    """Cache, transform and icon operations over injected collaborators."""

    def __init__(
        self,
        cache: DateKeyCache,
        icons: IconResolver,
        transformer: ActivityRecordTransformer | None = None,
    ):
        self.cache = cache
        self.icons = icons
        self.transformer = transformer or ActivityRecordTransformer()

    @classmethod
    def from_config(cls, config: AppConfig):
        return cls(
            cache=DateKeyCache.from_config(config),
            icons=IconResolver(config.paths.icons_dir),
        )

    # --- Cache ---

    def cache_key_for_date(self, date) -> str:
        return self.cache.derive_key(date)

    def cached_data(self, key: str) -> bytes | None:
        return self.cache.get(key)

    def cache_data(self, data: bytes, key: str) -> None:
        self.cache.put(key, data)

    # --- Transform ---

    def transform_activity_event(self, event, bundle_id: str, start_of_day) -> ActivityRecord:
        return self.transformer.transform(event, bundle_id, start_of_day)

    # --- Icons ---

    def app_icon(self, bundle_id: str):
        return self.icons.app_icon(bundle_id)

    def base64_icon(self, bundle_id: str) -> str | None:
        return self.icons.base64_icon(bundle_id)

    # --- Day pipeline ---

    def day_key(self, day) -> str:
        """Cache key for the records of ``day``.

        Uses the same wall-clock date the transformer stamps on each record,
        so a local-midnight boundary such as 00:00+02:00 keys to its own day.
        """
        return self.cache.derive_key(record_date(day))

    def store_day(self, observations, start_of_day) -> str:
        """Transform (bundle_id, observation) pairs and cache them for the day.

        Every observation is validated before anything is written, so one bad
        observation leaves the existing entry untouched.

        Returns:
            The cache key the records were written under
        """
        records = [
            self.transformer.transform(observation, bundle_id, start_of_day)
            for bundle_id, observation in observations
        ]
        key = self.day_key(start_of_day)
        self.cache.put(key, encode_records(records))
        logger.info("Stored %d activity records under %s", len(records), key)
        return key

    def load_day(self, day) -> list[ActivityRecord] | None:
        """Records cached for ``day``, or None if the day was never stored."""
        payload = self.cache.get(self.day_key(day))
        if payload is None:
            return None
        return decode_records(payload)

    def load_days(self, first_day, last_day) -> list[ActivityRecord]:
        """Records for every stored day from ``first_day`` to ``last_day`` inclusive.

        Days never stored are skipped. Records sharing (bundle_id, date) are
        merged, and the result is sorted by (date, bundle_id).
        """
        day = record_date(first_day)
        last = record_date(last_day)
        if last < day:
            raise ValidationError(f"Range ends before it starts: {day} > {last}")
        records = []
        while day <= last:
            stored = self.load_day(day)
            if stored:
                records.extend(stored)
            day += timedelta(days=1)
        return merge_records(records)


_default_utils: ScreenTimeUtils | None = None


def get_default_utils() -> ScreenTimeUtils:
    """Lazily build the shared instance from AppConfig.from_env()."""
    global _default_utils
    if _default_utils is None:
        _default_utils = ScreenTimeUtils.from_config(AppConfig.from_env())
    return _default_utils


def set_default_utils(utils: ScreenTimeUtils | None) -> None:
    """Replace (or with None, reset) the shared instance."""
    global _default_utils
    _default_utils = utils


def cache_key_for_date(date) -> str:
    return get_default_utils().cache_key_for_date(date)


def cached_data(key: str) -> bytes | None:
    return get_default_utils().cached_data(key)


def cache_data(data: bytes, key: str) -> None:
    get_default_utils().cache_data(data, key)


def transform_activity_event(event, bundle_id: str, start_of_day) -> ActivityRecord:
    return get_default_utils().transform_activity_event(event, bundle_id, start_of_day)


def app_icon(bundle_id: str):
    return get_default_utils().app_icon(bundle_id)


def base64_icon(bundle_id: str) -> str | None:
    return get_default_utils().base64_icon(bundle_id)
