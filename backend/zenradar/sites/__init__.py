"""Static site configuration: descriptors and the built-in catalog."""

from .descriptor import SiteDescriptor, CurrencyOverride, DEFAULT_STOCK_POLICY
from .catalog import BUILTIN_SITES, load_sites

__all__ = [
    "SiteDescriptor",
    "CurrencyOverride",
    "DEFAULT_STOCK_POLICY",
    "BUILTIN_SITES",
    "load_sites",
]
