"""Activity: raw usage observations to normalized, cacheable records."""

from screentime.activity.aggregator import (
    format_time,
    merge_records,
    summarize_usage_events,
    time_range_for_period,
    usage_event_from_mapping,
)
from screentime.activity.codec import decode_records, encode_records
from screentime.activity.limits import AppLimitRegistry
from screentime.activity.transformer import (
    ActivityRecordTransformer,
    observation_from_mapping,
    record_date,
    transform_activity_event,
)

__all__ = [
    "ActivityRecordTransformer",
    "AppLimitRegistry",
    "decode_records",
    "encode_records",
    "format_time",
    "merge_records",
    "observation_from_mapping",
    "record_date",
    "summarize_usage_events",
    "time_range_for_period",
    "transform_activity_event",
    "usage_event_from_mapping",
]
