"""
Test Fixtures Package

Shared test utilities and helpers for consistent testing across all modules.
"""

from .cache_factory import CacheTestFactory, CountingLoader, FakeClock

__all__ = ["CacheTestFactory", "CountingLoader", "FakeClock"]
