"""Deterministic product identity."""

import re
import unicodedata
from typing import Optional
from urllib.parse import urlparse

MAX_KEY_LENGTH = 120
NAME_PREFIX_LENGTH = 20

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_NON_WORD = re.compile(r"[^\w]+", re.UNICODE)
_WHITESPACE = re.compile(r"\s+")


def _fold(value: str) -> str:
    """Lower-case, ASCII-fold ("Kāru" -> "karu") and drop non-alphanumerics."""
    decomposed = unicodedata.normalize("NFKD", value)
    ascii_only = decomposed.encode("ascii", "ignore").decode("ascii")
    return _NON_ALNUM.sub("", ascii_only.lower())


def url_slug(detail_url: Optional[str]) -> str:
    """Last path segment of a URL without query string, reduced to [a-z0-9]."""
    if not detail_url:
        return ""
    path = urlparse(detail_url).path.rstrip("/")
    return _fold(path.rsplit("/", 1)[-1])


def derive_key(
    detail_url: Optional[str],
    display_name: str,
    site_id: str,
    variant_id: Optional[str] = None,
) -> str:
    """Derive the stable product key ``{site}_{url_slug}_{name_prefix}[_{variant}]``.

    The name is normalized before taking the 20 character prefix, so
    whitespace and case differences never change the key.

    Args:
        detail_url: Product detail URL
        display_name: Product display name
        site_id: Site identifier
        variant_id: Variant identifier when the source exposes one

    Returns:
        Product key
    """
    site = _fold(site_id)
    name_prefix = _fold(display_name or "")[:NAME_PREFIX_LENGTH]
    key = f"{site}_{url_slug(detail_url)}_{name_prefix}"[:MAX_KEY_LENGTH]

    if variant_id:
        variant = _fold(str(variant_id))
        if variant:
            key = f"{key}_{variant}"
    return key


def normalize_name(name: Optional[str]) -> str:
    """Matching form of a name: lower-case, non-word characters to spaces, collapsed."""
    if not name:
        return ""
    return _WHITESPACE.sub(" ", _NON_WORD.sub(" ", name.lower())).strip()
