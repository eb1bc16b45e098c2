"""
Principal resolution for identity-scoped upstream queries.
"""

import asyncio
import time
from typing import Callable, Optional, Protocol

from shared.errors import NoPrincipalError
from shared.logging import get_logger
from service_gateway.app.adapters.upstream_client import UpstreamClient
from service_gateway.app.domain.models import Principal


class PrincipalResolver(Protocol):
    """Strategy that picks the upstream principal a call runs as."""

    async def resolve(self) -> Principal:
        ...


class FirstPrincipalResolver:
    """Lists upstream principals on every call and takes the first one.

    The upstream's own ordering decides; there is no user selection.
    """

    def __init__(self, upstream: UpstreamClient):
        self.upstream = upstream
        self.logger = get_logger("gateway.principal_resolver")

    async def resolve(self) -> Principal:
        users = await self.upstream.execute("/Users")
        if not isinstance(users, list) or not users:
            self.logger.error("Upstream returned no principals")
            raise NoPrincipalError(details={"path": "/Users"})

        principal = Principal.model_validate(users[0])
        self.logger.debug("Principal resolved", principal_id=principal.id, candidates=len(users))
        return principal


class CachedPrincipalResolver:
    """Keeps a delegate's answer for ``ttl_seconds``."""

    def __init__(self, delegate: PrincipalResolver, ttl_seconds: float,
                 clock: Callable[[], float] = time.monotonic):
        self.delegate = delegate
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._cached: Optional[Principal] = None
        self._expires_at = 0.0
        self._lock = asyncio.Lock()

    async def resolve(self) -> Principal:
        async with self._lock:
            now = self._clock()
            if self._cached is None or now >= self._expires_at:
                self._cached = await self.delegate.resolve()
                self._expires_at = now + self.ttl_seconds
            return self._cached


def build_principal_resolver(upstream: UpstreamClient, cache_ttl_seconds: float = 0.0) -> PrincipalResolver:
    """Stateless resolver, wrapped in a cache only when a TTL is configured."""
    resolver: PrincipalResolver = FirstPrincipalResolver(upstream)
    if cache_ttl_seconds > 0:
        resolver = CachedPrincipalResolver(resolver, cache_ttl_seconds)
    return resolver
