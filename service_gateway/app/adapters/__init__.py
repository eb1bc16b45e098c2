"""
Adapters package for the Gateway Service.

Contains the HTTP client wrapper for the upstream media server. It
encapsulates:

- Base URL, credential header and request timeout
- Error handling that maps to shared errors

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .upstream_client import UpstreamClient

__all__ = [
    "UpstreamClient",
]
