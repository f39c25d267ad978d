"""
Backend-for-frontend service package for the Orchestrix console.

The BFF fronts the console's requests, enforcing:
- Authentication: bearer token capture and unverified claim extraction
- Authorization: flat role gates per route
- Validation: per-endpoint request schemas
- Forwarding: one upstream call per request to the orchestration API

Structure:
- app.main: FastAPI app, routes, and middleware wiring.
- app.adapters: HTTP client for the orchestration API.
- app.domain: Auth middleware, request schemas, resource services.
- app.ratelimit: In-process token bucket and middleware.
"""
