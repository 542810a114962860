"""
Service layer infrastructure - resilience patterns for substance lookups.

Provides:
- normalize_name: canonical cache/match key for a substance name
- ExpiringCache: In-memory cache with fixed TTL and lazy expiry
- ErrorBreaker: Per-endpoint failure counter that fails fast once tripped
- RetryingFetcher: Exponential backoff gated by the ErrorBreaker
- RequestDeduplicator: Prevents duplicate concurrent requests
- ServiceClient: Pipeline combining all of the above over a Transport
"""

from substance_lookup.services.errors import (
    ServiceError,
    ValidationError,
    NetworkError,
    CircuitOpenError,
    RetriesExhaustedError,
    SubstanceParseError,
)
from substance_lookup.services.normalizer import normalize_name, cache_key
from substance_lookup.services.cache import (
    ExpiringCache,
    CacheEntry,
    CacheStats,
    LOOKUP_CACHE_TTL,
    LONG_TERM_CACHE_TTL,
)
from substance_lookup.services.circuit_breaker import (
    ErrorBreaker,
    EndpointFailureState,
)
from substance_lookup.services.retry import RetryingFetcher
from substance_lookup.services.deduplicator import RequestDeduplicator, request_key
from substance_lookup.services.transport import (
    HttpTransport,
    Transport,
    TransportResponse,
)
from substance_lookup.services.client import ServiceClient

__all__ = [
    # Errors
    "ServiceError",
    "ValidationError",
    "NetworkError",
    "CircuitOpenError",
    "RetriesExhaustedError",
    "SubstanceParseError",
    # Normalizer
    "normalize_name",
    "cache_key",
    # Cache
    "ExpiringCache",
    "CacheEntry",
    "CacheStats",
    "LOOKUP_CACHE_TTL",
    "LONG_TERM_CACHE_TTL",
    # Error breaker
    "ErrorBreaker",
    "EndpointFailureState",
    # Retry
    "RetryingFetcher",
    # Deduplicator
    "RequestDeduplicator",
    "request_key",
    # Transport
    "HttpTransport",
    "Transport",
    "TransportResponse",
    # Client
    "ServiceClient",
]
