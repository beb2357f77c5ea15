"""Exception types raised by the screen-time layer.

Absence (cache miss, unresolved icon) is never an error: those paths
return None.
"""


class ScreenTimeError(Exception):
    """Base class for screentime errors."""


class StorageError(ScreenTimeError):
    """Persistence medium unavailable or an I/O failure during get/put."""


class ValidationError(ScreenTimeError, ValueError):
    """Malformed input, e.g. an observation with a negative duration."""
