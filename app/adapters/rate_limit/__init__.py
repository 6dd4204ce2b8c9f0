"""Rate limiting adapters.

This package provides a small abstraction layer so the service can start with
an in-memory guard and later migrate to Redis or another shared store without
changing the API layer.
"""
