"""
Module: content
Description: Clients for third-party content services.

- dog_api: Random dog image service
"""

__all__ = []
