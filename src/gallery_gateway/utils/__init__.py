"""
Module: utils
Description: Package initialization for utility functions.

Current utilities:
- logger: Structured logging configuration and helpers
- errors: Exception taxonomy shared by all layers
"""

__all__ = []
