"""BeautifulSoup helpers shared by the parsers."""

import re
from typing import Iterable, Optional

from bs4 import BeautifulSoup, Tag

_WHITESPACE = re.compile(r"\s+")

_TITLE_NOISE = (
    re.compile(r"\s*-\s*sold\s*out\s*$", re.IGNORECASE),
    re.compile(r"\s*-\s*out\s*of\s*stock\s*$", re.IGNORECASE),
    re.compile(r"\s*-\s*ausverkauft\s*$", re.IGNORECASE),
    re.compile(r"^\s*new\s*[:\-]\s*", re.IGNORECASE),
    re.compile(r"^\s*sale\s*[:\-]\s*", re.IGNORECASE),
    re.compile(r"\s*\[[^\]]*\]\s*$"),
)

IMAGE_ATTRS = ("src", "data-src", "data-original", "data-lazy")
SRCSET_ATTRS = ("srcset", "data-srcset")

# Used when none of the site's own name selectors match
GLOBAL_NAME_SELECTORS = ("h1", "h2", "h3", "h4", ".title", ".name", ".product-title")
GLOBAL_PRICE_SELECTORS = (".price", ".money", "[class*='price']")


def make_soup(document: str) -> BeautifulSoup:
    return BeautifulSoup(document or "", "html.parser")


def clean_text(text: Optional[str]) -> str:
    """Collapse whitespace (including non-breaking spaces) and trim."""
    if not text:
        return ""
    return _WHITESPACE.sub(" ", text.replace("\u00a0", " ")).strip()


def clean_product_title(title: Optional[str]) -> str:
    """Strip listing noise like "- Sold Out" or a leading "NEW:" from a title."""
    result = clean_text(title)
    for pattern in _TITLE_NOISE:
        result = pattern.sub("", result)
    return clean_text(result)


def select_text(element: Tag, selectors: Iterable[str]) -> str:
    """Text of the first selector that yields non-empty text."""
    for selector in selectors:
        if not selector:
            continue
        for found in element.select(selector):
            text = clean_text(found.get_text(" "))
            if text:
                return text
    return ""


def select_attr(element: Tag, selectors: Iterable[str], attr: str) -> Optional[str]:
    """Attribute value of the first matching element that carries it."""
    for selector in selectors:
        if not selector:
            continue
        for found in element.select(selector):
            value = found.get(attr)
            if value:
                return value.strip()
    return None


def image_source(img: Optional[Tag]) -> Optional[str]:
    """Resolve an <img> source, honouring lazy-loading attributes.

    Checks ``src``, ``data-src``, ``data-original``, ``data-lazy`` and then
    the first candidate of ``srcset``/``data-srcset``. Inline data URIs are
    ignored.
    """
    if img is None:
        return None
    for attr in IMAGE_ATTRS:
        value = img.get(attr)
        if value and not value.strip().startswith("data:"):
            return value.strip()
    for attr in SRCSET_ATTRS:
        value = img.get(attr)
        if value:
            first = value.split(",")[0].strip().split(" ")[0]
            if first:
                return first
    return None


def find_image(element: Tag, selectors: Iterable[str]) -> Optional[str]:
    """Image URL from the ordered selectors, falling back to any <img>."""
    for selector in tuple(selectors) + ("img",):
        for found in element.select(selector):
            img = found if found.name == "img" else found.find("img")
            source = image_source(img) if img is not None else image_source(found)
            if source:
                return source
    return None


def image_alt(element: Tag) -> str:
    """Alternative text of the first image that has one."""
    for img in element.find_all("img"):
        alt = clean_text(img.get("alt"))
        if alt:
            return alt
    return ""
