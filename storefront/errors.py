"""
Domain errors raised by the storefront operations.

The HTTP layer maps these onto status codes in ``storefront.app``.
"""

from __future__ import annotations


class StorefrontError(Exception):
    """Base class for domain errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthorized(StorefrontError):
    """An operation needed a resolved identity and none was present."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class AccessDenied(StorefrontError):
    """Submitted credentials were rejected."""

    def __init__(self, message: str = "Access denied. Invalid admin credentials."):
        super().__init__(message)


class NotFound(StorefrontError):
    """A referenced product, order or contact does not exist."""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.entity_id = entity_id


class DuplicateUser(StorefrontError):
    """A user row with this email already exists."""

    def __init__(self, email: str):
        super().__init__(f"User with email {email!r} already exists")
        self.email = email
