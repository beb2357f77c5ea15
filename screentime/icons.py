"""App icon lookup and base64 encoding.

Icons are resolved from a directory of image files named after the bundle
id (``com.example.app.png``). Encoding always re-renders to PNG so callers
get one format regardless of what was on disk.
"""

import base64
import io
import logging
from pathlib import Path

from PIL import Image

from screentime.constants import ICON_EXTENSIONS

logger = logging.getLogger(__name__)

_PNG_MODES = {"1", "L", "LA", "P", "RGB", "RGBA"}


def encode_icon_base64(image: Image.Image) -> str:
    """PNG-encode an image and return it as base64 text without line breaks."""
    if image.mode not in _PNG_MODES:
        image = image.convert("RGBA")
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return base64.b64encode(buf.getvalue()).decode("ascii")


class IconResolver:
    """Resolves app icons from ``icons_dir``."""

    def __init__(self, icons_dir: Path):
        self.icons_dir = Path(icons_dir)

    def find_icon_path(self, bundle_id: str) -> Path | None:
        if not bundle_id or "/" in bundle_id or "\\" in bundle_id or bundle_id.startswith("."):
            logger.debug("Refusing icon lookup for bundle id %r", bundle_id)
            return None
        for ext in ICON_EXTENSIONS:
            path = self.icons_dir / f"{bundle_id}.{ext}"
            if path.is_file():
                return path
        return None

    def app_icon(self, bundle_id: str) -> Image.Image | None:
        """Loaded icon image, or None if no readable icon exists."""
        path = self.find_icon_path(bundle_id)
        if path is None:
            return None
        try:
            with Image.open(path) as image:
                image.load()
                return image.copy()
        except OSError as e:
            logger.warning("Unreadable icon for %s at %s: %s", bundle_id, path, e)
            return None

    def base64_icon(self, bundle_id: str) -> str | None:
        image = self.app_icon(bundle_id)
        if image is None:
            return None
        return encode_icon_base64(image)
