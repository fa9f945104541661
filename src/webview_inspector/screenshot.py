"""Screen capture for the bridge's /screenshot endpoint.

Capture happens in the bridge process with Pillow's ``ImageGrab``; it never
goes through the evaluation loop.
"""

from __future__ import annotations

import asyncio
import io
import logging

from PIL import ImageGrab

from .errors import PlatformUnsupported
from .schemas import Region

logger = logging.getLogger(__name__)


def grab_png(region: Region | None = None) -> bytes:
    """Grab the screen (or a region of it) and encode it as PNG."""
    bbox = None
    if region is not None:
        bbox = (region.x, region.y, region.x + region.width, region.y + region.height)
    try:
        image = ImageGrab.grab(bbox=bbox)
    except (OSError, NotImplementedError) as e:
        logger.warning(f"Screen capture failed: {e}")
        raise PlatformUnsupported(f"Screen capture is not available here: {e}") from e

    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


async def capture(region: Region | None = None) -> bytes:
    return await asyncio.to_thread(grab_png, region)
