"""Thread-safe in-memory byte stash with TTL expiry and LRU eviction, plus WSGI rate limiting."""

__version__ = "0.1.1"
__all__ = ["ratelimit", "stash"]