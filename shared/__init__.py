"""
Shared utilities for the cache-aside client.

This package aggregates the cross-cutting building blocks consumed by
``cache_client``:

- config: Store and cache configuration via pydantic-settings
- logging: Structured logging with correlation context
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses

Do not import from ``cache_client`` into shared/.
"""
