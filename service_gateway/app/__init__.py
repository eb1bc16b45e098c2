"""
Gateway service package for the media catalog.

The gateway fronts client requests to one upstream media server, enforcing:
- Rate limiting: a per-address fixed window over the whole catalog surface
- Principal resolution: the upstream user identity-scoped queries run as
- Parameter normalization: public names to upstream names, empties dropped

Structure:
- app.main: FastAPI app, routes, and middleware wiring.
- app.adapters: HTTP client for the upstream media server.
- app.domain: Catalog operations, models, parameter and URL helpers.
- app.ratelimit: Fixed-window limiter and request middleware.
"""
