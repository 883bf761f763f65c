"""Storage abstractions for weekly intentions."""

from .chroma import (
    IntentionStore,
    IntentionStoreError,
    StoreFetchError,
    StoreUnavailableError,
    StoreWriteError,
)
from .models import IntentionRecord

__all__ = [
    "IntentionRecord",
    "IntentionStore",
    "IntentionStoreError",
    "StoreFetchError",
    "StoreUnavailableError",
    "StoreWriteError",
]
