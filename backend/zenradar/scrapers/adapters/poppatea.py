"""Poppatea parser.

Poppatea renders image cards and title cards separately on its listing page,
and only the Shopify product page knows the variants (tin, refill pouch,
2-pack), so every product is expanded through its detail page.
"""

import re
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

from zenradar.scrapers.base import RawExtraction
from zenradar.scrapers.utils.html import image_source
from zenradar.scrapers.utils.normalizer import absolute_url
from zenradar.scrapers.variants import VariantPageParser
from zenradar.sites.descriptor import SiteDescriptor

PRODUCT_PATH = "/de-de/collections/all-teas/products/"

# German listing names -> English URL handles
_SLUG_REPLACEMENTS = (
    ("matcha tee", "matcha-tea"),
    ("zeremoniell", "ceremonial"),
    ("hojicha-teepulver", "hojicha-tea-powder"),
    ("mit chai", "with-chai"),
)

_IMAGE_SKIP = ("icon", "logo", "main_color")


def product_slug(name: str) -> str:
    """Shopify handle for a product shown without a link on the listing."""
    slug = name.lower()
    for source, target in _SLUG_REPLACEMENTS:
        slug = slug.replace(source, target)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    return re.sub(r"-+", "-", slug).strip("-")


def image_kind(text: str) -> str:
    """Packaging type an image or variant title refers to."""
    lowered = text.lower()
    if "2 x" in lowered or "2_x" in lowered or "2x" in lowered:
        return "2pack"
    if "pouch" in lowered or "nachfüllbeutel" in lowered or "refill" in lowered:
        return "pouch"
    if "tin" in lowered or "dose" in lowered:
        return "tin"
    return "default"


class PoppateaParser(VariantPageParser):
    """Shopify variant expansion for poppatea.com."""

    site_id = "poppatea"

    def find_containers(self, soup: Tag, site: SiteDescriptor) -> List[Tag]:
        # Only the title cards describe a product; image cards are separate
        return [card for card in super().find_containers(soup, site) if card.select_one(".card__title")]

    def extract_container(self, site: SiteDescriptor, container: Tag) -> Optional[RawExtraction]:
        extraction = super().extract_container(site, container)
        if extraction is None:
            return None
        if not extraction.detail_url or extraction.detail_url == site.listing_url:
            extraction.detail_url = site.base_url.rstrip("/") + PRODUCT_PATH + product_slug(extraction.name)
        return extraction

    def variant_image(self, soup: BeautifulSoup, variant_title: str, default: Optional[str]) -> Optional[str]:
        """Pick the packaging photo (tin, pouch, 2-pack) matching a variant title."""
        wanted = image_kind(variant_title)
        if wanted == "default":
            return default
        for img in soup.select("img"):
            src = image_source(img)
            if not src or "cdn/shop" not in src:
                continue
            if any(skip in src.lower() for skip in _IMAGE_SKIP):
                continue
            if image_kind(f"{img.get('alt', '')} {src}") == wanted:
                return absolute_url(src, "https://poppatea.com")
        return default
