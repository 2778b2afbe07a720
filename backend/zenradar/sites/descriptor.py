"""Static per-site configuration.

A SiteDescriptor carries everything the generic parser, the price normalizer
and the stock classifier need to know about one monitored shop. Descriptors
are immutable and loaded once at process start.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Optional, Tuple


DEFAULT_STOCK_POLICY: Tuple[str, ...] = (
    "structured_availability",
    "out_of_stock_marker",
    "purchase_affordance",
    "price_present",
    "default_in_stock",
)


@dataclass(frozen=True)
class CurrencyOverride:
    """Fixed conversion used instead of the static rate table for one site.

    Bare amounts on the site are read as ``source`` currency and multiplied
    by ``rate`` to reach the canonical currency.
    """

    source: str
    rate: Decimal


@dataclass(frozen=True)
class SiteDescriptor:
    """Declarative configuration for one monitored site."""

    site_id: str
    name: str
    base_url: str
    listing_url: str

    # Ordered fallback selectors per field; first non-empty result wins
    container_selectors: Tuple[str, ...] = ()
    name_selectors: Tuple[str, ...] = ()
    price_selectors: Tuple[str, ...] = ()
    link_selectors: Tuple[str, ...] = ()
    image_selectors: Tuple[str, ...] = ()

    # Purchase affordance (e.g. add-to-cart button) and explicit sold-out marker
    stock_selector: Optional[str] = None
    out_of_stock_selector: Optional[str] = None

    stock_keywords: Tuple[str, ...] = ()
    out_of_stock_keywords: Tuple[str, ...] = ()

    default_currency: str = "EUR"
    currency_override: Optional[CurrencyOverride] = None
    price_quirk: Optional[str] = None
    stock_policy: Tuple[str, ...] = DEFAULT_STOCK_POLICY

    request_headers: Dict[str, str] = field(default_factory=dict, hash=False, compare=False)
    enabled: bool = True

    @classmethod
    def from_dict(cls, data: dict) -> "SiteDescriptor":
        """Build a descriptor from a plain (JSON) mapping.

        List values become tuples; ``currency_override`` may be given as
        ``{"source": "JPY", "rate": "0.0067"}``.

        Args:
            data: Mapping using the dataclass field names

        Returns:
            SiteDescriptor instance

        Raises:
            ValueError: If a required field is missing
        """
        missing = [k for k in ("site_id", "name", "base_url", "listing_url") if not data.get(k)]
        if missing:
            raise ValueError(f"Site descriptor missing fields: {', '.join(missing)}")

        kwargs = {}
        for key, value in data.items():
            if key not in cls.__dataclass_fields__:
                continue
            if isinstance(value, list):
                value = tuple(value)
            kwargs[key] = value

        override = kwargs.get("currency_override")
        if isinstance(override, dict):
            kwargs["currency_override"] = CurrencyOverride(
                source=override["source"].upper(),
                rate=Decimal(str(override["rate"])),
            )

        return cls(**kwargs)
