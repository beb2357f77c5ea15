"""Persistence media for opaque cache payloads.

A medium maps arbitrary string keys to byte payloads. DateKeyCache takes
one at construction, which makes it trivial to swap in the in-memory
double for tests or a different backend later.
"""

import hashlib
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol
from urllib.parse import quote, unquote

from screentime.errors import StorageError

logger = logging.getLogger(__name__)

ENTRY_SUFFIX = ".bin"
KEY_SUFFIX = ".key"
HASHED_NAME_PREFIX = "%h"
# NAME_MAX is 255 bytes on common file systems; leave room for the suffix
MAX_ENCODED_NAME = 200


def _atomic_write_bytes(path, data: bytes):
    """Write bytes atomically using temp file + rename."""
    path = Path(path)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


class BlobStore(Protocol):
    """Key-value medium for byte payloads."""

    def read(self, key: str) -> bytes | None: ...

    def write(self, key: str, payload: bytes) -> None: ...

    def delete(self, key: str) -> bool: ...

    def keys(self) -> list[str]: ...


class FileBlobStore:
    """One file per key under a root directory.

    Keys are percent-encoded into file names, so any string is a valid key
    and the mapping stays reversible for keys(). Keys whose encoded name
    would not fit the file system limit are stored under a SHA-256 name
    with a sidecar file holding the original key. Percent-encoding never
    produces "%h", so hashed names cannot clash with encoded ones.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def _entry_name(self, key: str) -> str:
        encoded = quote(key, safe="")
        if len(encoded) <= MAX_ENCODED_NAME:
            return encoded
        return HASHED_NAME_PREFIX + hashlib.sha256(key.encode("utf-8")).hexdigest()

    def _path(self, key: str) -> Path:
        return self.root / f"{self._entry_name(key)}{ENTRY_SUFFIX}"

    def read(self, key: str) -> bytes | None:
        path = self._path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.error("Cache read failed for %r at %s: %s", key, path, exc)
            raise StorageError(f"Failed to read cache entry {key!r}: {exc}") from exc

    def write(self, key: str, payload: bytes) -> None:
        name = self._entry_name(key)
        path = self.root / f"{name}{ENTRY_SUFFIX}"
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            if name.startswith(HASHED_NAME_PREFIX):
                _atomic_write_bytes(self.root / f"{name}{KEY_SUFFIX}", key.encode("utf-8"))
            _atomic_write_bytes(path, payload)
        except OSError as exc:
            logger.error("Cache write failed for %r at %s: %s", key, path, exc)
            raise StorageError(f"Failed to write cache entry {key!r}: {exc}") from exc

    def delete(self, key: str) -> bool:
        name = self._entry_name(key)
        try:
            (self.root / f"{name}{ENTRY_SUFFIX}").unlink()
            if name.startswith(HASHED_NAME_PREFIX):
                (self.root / f"{name}{KEY_SUFFIX}").unlink(missing_ok=True)
        except FileNotFoundError:
            return False
        except OSError as exc:
            logger.error("Cache delete failed for %r: %s", key, exc)
            raise StorageError(f"Failed to delete cache entry {key!r}: {exc}") from exc
        return True

    def keys(self) -> list[str]:
        if not self.root.is_dir():
            return []
        try:
            names = os.listdir(self.root)
            keys = []
            for name in names:
                if not name.endswith(ENTRY_SUFFIX):
                    continue
                stem = name[: -len(ENTRY_SUFFIX)]
                if stem.startswith(HASHED_NAME_PREFIX):
                    raw = (self.root / f"{stem}{KEY_SUFFIX}").read_bytes()
                    keys.append(raw.decode("utf-8"))
                else:
                    keys.append(unquote(stem))
        except OSError as exc:
            logger.error("Failed to list cache directory %s: %s", self.root, exc)
            raise StorageError(f"Failed to list cache directory {self.root}: {exc}") from exc
        return sorted(keys)


class MemoryBlobStore:
    """Dict-backed medium for tests and throwaway sessions."""

    def __init__(self):
        self._entries: dict[str, bytes] = {}

    def read(self, key: str) -> bytes | None:
        return self._entries.get(key)

    def write(self, key: str, payload: bytes) -> None:
        self._entries[key] = bytes(payload)

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def keys(self) -> list[str]:
        return sorted(self._entries)
