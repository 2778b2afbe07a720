"""Scraper utilities for fetching, rate limiting, and data normalization."""

from .rate_limiter import DomainRateLimiter, TokenBucket
from .normalizer import (
    PriceNormalizer,
    CategoryClassifier,
    ParsedPrice,
    NormalizedPrice,
    normalize_url,
    absolute_url,
    PRICE_QUIRKS,
)
from .stock import StockClassifier, StockSignals, STOCK_RULES
from .identity import derive_key, normalize_name
from .retry import build_http_retry
from .fetcher import DocumentFetcher, FetchResponse, HttpDocumentFetcher
from .images import ImagePipeline, PassthroughImagePipeline


__all__ = [
    # Rate limiting
    "DomainRateLimiter",
    "TokenBucket",
    # Normalization
    "PriceNormalizer",
    "CategoryClassifier",
    "ParsedPrice",
    "NormalizedPrice",
    "normalize_url",
    "absolute_url",
    "PRICE_QUIRKS",
    # Stock and identity
    "StockClassifier",
    "StockSignals",
    "STOCK_RULES",
    "derive_key",
    "normalize_name",
    # Retry
    "build_http_retry",
    # Fetching
    "DocumentFetcher",
    "FetchResponse",
    "HttpDocumentFetcher",
    # Images
    "ImagePipeline",
    "PassthroughImagePipeline",
]
