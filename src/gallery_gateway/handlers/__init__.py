"""
Module: handlers
Description: Package initialization for API endpoint handlers.

This package contains FastAPI route handlers for the gallery gateway:
- gallery: Single-path action endpoint (/api)
- records: Resource-style record endpoints (/records, /images/random)
- dependencies: Shared dependencies, including the authorization gate

All handlers use dependency injection for the verifier, store and
content client.
"""

__all__ = []
