"""Services module for business logic and data operations.

This module contains the change-detecting product store that merges crawl
results into persisted state and emits stock and price history.
"""

from zenradar.services.product_store import ChangeDetectingStore, UpsertResult

__all__ = [
    "ChangeDetectingStore",
    "UpsertResult",
]
