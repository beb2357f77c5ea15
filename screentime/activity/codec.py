"""Byte encoding for lists of ActivityRecords stored in the date-keyed cache."""

import json

from screentime.constants import RECORD_FORMAT_VERSION
from screentime.errors import ValidationError
from screentime.models import ActivityRecord


def encode_records(records) -> bytes:
    """Serialize records to compact UTF-8 JSON. Same records give the same bytes."""
    document = {
        "version": RECORD_FORMAT_VERSION,
        "records": [record.to_dict() for record in records],
    }
    return json.dumps(document, sort_keys=True, separators=(",", ":")).encode("utf-8")


def decode_records(payload: bytes) -> list[ActivityRecord]:
    """Inverse of encode_records. Raises ValidationError on a malformed payload."""
    try:
        document = json.loads(bytes(payload).decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError, TypeError) as exc:
        raise ValidationError(f"Cached payload is not valid record JSON: {exc}") from exc
    if not isinstance(document, dict):
        raise ValidationError("Cached payload is not a record document")
    version = document.get("version")
    if version != RECORD_FORMAT_VERSION:
        raise ValidationError(f"Unsupported record payload version: {version!r}")
    try:
        return [ActivityRecord.from_dict(item) for item in document.get("records", [])]
    except (KeyError, TypeError, ValueError) as exc:
        raise ValidationError(f"Malformed record in cached payload: {exc}") from exc
