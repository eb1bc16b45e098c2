"""
Shared utilities for the media catalog access gateway.

This package aggregates common building blocks consumed by the gateway
service and its client:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- result: Tagged success/error values crossing the transport edge
- retry: Bounded retry with backoff for rate-limited calls

Do not import from service_* packages into shared/.
"""
