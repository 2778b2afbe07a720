"""Image pipeline boundary.

Re-encoding and hosting images is handled outside the crawler; the crawler
only hands over the raw URL and stores whatever public URL comes back.
"""

from typing import Optional, Protocol

import structlog

from zenradar.scrapers.utils.normalizer import absolute_url

logger = structlog.get_logger(__name__)

_PLACEHOLDER_MARKERS = ("placeholder", "no-image", "noimage", "blank.gif", "spacer.gif")


class ImagePipeline(Protocol):
    async def store(self, raw_image_url: str, product_key: str) -> Optional[str]:
        ...


class PassthroughImagePipeline:
    """Keeps the shop's own image URL after making it absolute.

    Placeholder images are dropped so that a product never ends up showing
    a generic "no image" tile.
    """

    def __init__(self, base_url: str = ""):
        self.base_url = base_url

    async def store(self, raw_image_url: str, product_key: str) -> Optional[str]:
        if not raw_image_url:
            return None
        url = absolute_url(raw_image_url, self.base_url) if self.base_url else raw_image_url
        if url and url.startswith("//"):
            url = "https:" + url
        if not url or not url.startswith(("http://", "https://")):
            logger.debug("image_url_rejected", product_key=product_key, url=raw_image_url)
            return None
        if any(marker in url.lower() for marker in _PLACEHOLDER_MARKERS):
            return None
        return url
