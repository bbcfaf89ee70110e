"""
Module: storage
Description: Package initialization for data persistence layer.

This package contains data storage implementations for the gallery gateway:
- dynamodb: DynamoDB record store for saved images

All storage implementations follow async interfaces for consistency.
"""

__all__ = []
