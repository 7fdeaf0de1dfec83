"""
Network side of webdigest: bounded fetching, cancellation and concurrency.
"""

from .cancellation import AbortScope, CancellationSignal
from .http_client import BoundedFetcher, FetchedResponse
from .limiter import ConcurrencyLimiter

__all__ = [
    "AbortScope",
    "BoundedFetcher",
    "CancellationSignal",
    "ConcurrencyLimiter",
    "FetchedResponse",
]
