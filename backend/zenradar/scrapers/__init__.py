"""Crawling pipeline: parsers, enrichment utilities and orchestration.

This package provides:
- Base parser classes and the data structures passed between crawl stages
- Generic (selector-driven) and variant-expanding parsers
- Utility modules for fetching, rate limiting, price/stock normalization
- Factory for resolving the parser of a site
"""

from .base import (
    BaseParser,
    RawExtraction,
    NormalizedProduct,
    StockHistoryEntry,
    PriceHistoryEntry,
)
from .generic import GenericParser
from .variants import VariantPageParser, strip_variant_suffix
from .factory import ParserFactory, parser_factory, get_parser_factory

__all__ = [
    # Base classes
    "BaseParser",
    "GenericParser",
    "VariantPageParser",
    # Data structures
    "RawExtraction",
    "NormalizedProduct",
    "StockHistoryEntry",
    "PriceHistoryEntry",
    "strip_variant_suffix",
    # Factory
    "ParserFactory",
    "parser_factory",
    "get_parser_factory",
]
