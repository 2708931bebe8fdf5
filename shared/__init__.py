"""
Shared utilities for the Platform Access layer.

This package aggregates common building blocks used by the executor:

- config: Upstream connection settings via pydantic-settings
- logging: Structured logging with correlation IDs and secret redaction
- metrics: Prometheus metrics for logins and dispatch
- errors: Typed error taxonomy and responses

Do not import from service_* packages into shared/.
"""
