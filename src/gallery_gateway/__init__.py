"""
Package: gallery_gateway
Description: Token-authenticated API gateway for saved dog images.

Verifies Cognito-issued bearer tokens locally and gives each user
access to their own saved image records in DynamoDB.
"""

__version__ = "1.0.0"
