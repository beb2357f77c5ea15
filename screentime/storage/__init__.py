"""Storage: date-derived cache keys over pluggable persistence media."""

from screentime.storage.blob_store import BlobStore, FileBlobStore, MemoryBlobStore
from screentime.storage.date_key_cache import DateKeyCache, derive_cache_key
from screentime.storage.sqlite_cache import SqliteDateKeyCache

__all__ = [
    "BlobStore",
    "DateKeyCache",
    "FileBlobStore",
    "MemoryBlobStore",
    "SqliteDateKeyCache",
    "derive_cache_key",
]
