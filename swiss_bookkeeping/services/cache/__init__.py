"""Results cache package."""

from swiss_bookkeeping.services.cache.results_cache import CacheEntry, ResultsCache

__all__ = [
    "CacheEntry",
    "ResultsCache",
]
