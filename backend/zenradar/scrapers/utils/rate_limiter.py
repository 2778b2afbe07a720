"""Token bucket rate limiter for per-domain rate limiting."""

import asyncio
import time
from typing import Dict, Optional
from urllib.parse import urlparse


class TokenBucket:
    """Token bucket algorithm implementation for rate limiting.

    The bucket starts full and refills at a constant rate.
    Each request consumes one token. If no tokens are available,
    the request waits until tokens are refilled.
    """

    def __init__(self, rate: float, capacity: float):
        """Initialize token bucket.

        Args:
            rate: Tokens per second (e.g., 1.0 = 60 RPM)
            capacity: Maximum tokens in bucket (burst capacity)
        """
        self.rate = rate
        self.capacity = capacity
        self.tokens = capacity
        self.last_refill = time.monotonic()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = time.monotonic()
        elapsed = now - self.last_refill
        self.tokens = min(self.capacity, self.tokens + elapsed * self.rate)
        self.last_refill = now

    async def acquire(self, tokens: float = 1.0) -> None:
        """Acquire tokens from the bucket, waiting if necessary.

        Args:
            tokens: Number of tokens to acquire (default 1.0)
        """
        async with self._lock:
            while True:
                self._refill()
                if self.tokens >= tokens:
                    self.tokens -= tokens
                    return
                wait_time = (tokens - self.tokens) / self.rate
                await asyncio.sleep(wait_time)


class DomainRateLimiter:
    """Per-domain rate limiter using token bucket algorithm.

    Each shop gets its own bucket, so a slow or strict shop never holds back
    fetches against the others.
    """

    # Requests per minute for the monitored shops
    DOMAIN_LIMITS_RPM = {
        "global.tokichi.jp": 30,
        "www.marukyu-koyamaen.co.jp": 20,
        "global.ippodo-tea.co.jp": 30,
        "www.yoshien.com": 30,
        "matcha-karu.com": 30,
        "www.sho-cha.com": 20,
        "www.sazentea.com": 20,
        "www.mamecha.de": 30,
        "www.enjoyemeri.com": 30,
        "poppatea.com": 40,
        "horiishichimeien.com": 20,
    }

    DEFAULT_RPM = 30

    def __init__(self, limits_rpm: Optional[Dict[str, int]] = None):
        """Initialize rate limiter.

        Args:
            limits_rpm: Extra per-domain limits merged over the defaults
        """
        self._limits = dict(self.DOMAIN_LIMITS_RPM)
        if limits_rpm:
            self._limits.update(limits_rpm)
        self._buckets: Dict[str, TokenBucket] = {}

    @staticmethod
    def _make_bucket(rpm: float) -> TokenBucket:
        rate = rpm / 60.0
        # Capacity allows small bursts (10% of RPM, min 2)
        capacity = max(2.0, rpm / 10.0)
        return TokenBucket(rate=rate, capacity=capacity)

    def _get_bucket(self, domain: str) -> TokenBucket:
        if domain not in self._buckets:
            self._buckets[domain] = self._make_bucket(self._limits.get(domain, self.DEFAULT_RPM))
        return self._buckets[domain]

    async def acquire(self, domain: str, tokens: float = 1.0) -> None:
        """Wait until the domain's bucket allows one more request.

        Args:
            domain: Domain name to rate limit
            tokens: Number of tokens to acquire (default 1.0)
        """
        await self._get_bucket(domain).acquire(tokens)

    async def acquire_for_url(self, url: str) -> None:
        """Rate limit by the host of ``url``."""
        await self.acquire(urlparse(url).netloc)

    def set_custom_limit(self, domain: str, rpm: int) -> None:
        """Set a custom rate limit for a domain, replacing any existing bucket.

        Args:
            domain: Domain name
            rpm: Requests per minute limit
        """
        self._limits[domain] = rpm
        self._buckets[domain] = self._make_bucket(rpm)

    def get_current_rate(self, domain: str) -> float:
        """Current limit for a domain in requests per minute."""
        return self._get_bucket(domain).rate * 60.0
