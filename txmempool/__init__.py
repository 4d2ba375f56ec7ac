"""Ordered, thread-safe in-memory transaction pool with a concurrent linked list, LRU cache, filters and metrics."""

__version__ = "0.1.0"