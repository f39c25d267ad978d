"""
Shared utilities for the Orchestrix BFF.

This package aggregates the ambient building blocks used by the service:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request/trace correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and the error envelope
- tracing: OpenTelemetry provider and instrumentation
- base_service: FastAPI application scaffolding (middleware, health, metrics)
- test_helpers: Token generator and DTO factories for tests

Do not import from service_bff into bff_shared.
"""
