"""
Client for the gateway's public catalog surface, as used by the consuming
application.
"""

from .catalog_client import CatalogClient

__all__ = ["CatalogClient"]
