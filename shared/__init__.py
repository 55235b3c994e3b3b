"""
Shared utilities for the JWKS signing-key client.

This package aggregates common building blocks:

- config: Client configuration via pydantic-settings
- logging: Structured logging with kid correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types
- test_helpers: Key and token factories for tests

Do not import from service_jwks into shared/.
"""
