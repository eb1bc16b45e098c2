"""
Domain logic for the Gateway Service.

Catalog operations and the pure helpers they rely on, kept apart from the
HTTP layer and the upstream adapter.
"""
