"""
Module: auth
Description: Package initialization for token authentication.

This package contains the token verification components:
- jwks: Signing key resolver with an in-memory key cache
- verifier: RS256 bearer token verification and claim checks

All authentication logic is centralized here for security and maintainability.
"""

__all__ = []
