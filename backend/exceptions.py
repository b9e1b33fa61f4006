"""
GovDash exception types raised by crud.py.

Both subclass ValueError so callers that only care about "the write was
rejected" can catch ValueError. Routers map them to HTTP status codes:

    NotFoundError  → 404   (a record referenced by the write is missing)
    ConflictError  → 409   (duplicate email, delete blocked by references)
    ValueError     → 400   (range / format violation)
"""

from typing import Optional


class NotFoundError(ValueError):
    """A record referenced by a write does not exist."""

    def __init__(self, resource: str, resource_id=None):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} not found")


class ConflictError(ValueError):
    """A write would break uniqueness or referential integrity."""

    def __init__(self, message: str, error_code: str, context: Optional[dict] = None):
        self.error_code = error_code
        self.context = context or {}
        super().__init__(message)
