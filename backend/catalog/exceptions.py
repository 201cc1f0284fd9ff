"""
Product Catalog Backend — Custom Exception Hierarchy
======================================================

What:  Application-specific exceptions carrying an HTTP status.
How:   Each exception class carries a message, a numeric `status` and an
       optional context dict. The error terminator middleware turns any of
       them into `{"error": message}` with that status.
Who:   Raised by services, the database layer and the body-parsing stage.

Exception Hierarchy:
    CatalogError (base)          → 500 unless overridden
    ├── ValidationError          → 400 Bad Request
    ├── NotFoundError            → 404 Not Found
    ├── PayloadTooLargeError     → 413 Payload Too Large
    └── DatabaseError            → 500 Internal Server Error

Any other exception type reaching the terminator is mapped to its `status`
(or `status_code`) attribute when it has one, else 500.
"""

from typing import Any, Dict, Optional


class CatalogError(Exception):
    """
    Base exception for all catalog application errors.

    Attributes:
        message:  Client-facing error description (returned in the response)
        status:   HTTP status code for the response
        context:  Additional debug info (logged but NOT returned to client)
    """

    status: int = 500

    def __init__(
        self,
        message: str = "Internal server error",
        status: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        if status is not None:
            self.status = status
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(CatalogError):
    """Client sent input that can be corrected (missing fields, bad body)."""

    status = 400

    def __init__(
        self,
        message: str = "Invalid request",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(CatalogError):
    """
    Requested resource doesn't exist.

    A malformed identifier is reported the same way as an unknown one, so
    clients can't distinguish "bad format" from "no such product".
    """

    status = 404

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if resource_id is not None:
            ctx["resource_id"] = resource_id
        super().__init__(message=f"{resource} not found", context=ctx)
        self.resource = resource


class PayloadTooLargeError(CatalogError):
    """Request body exceeds the configured JSON body limit."""

    status = 413

    def __init__(self, limit: int, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["limit"] = limit
        super().__init__(message="Request entity too large", context=ctx)
        self.limit = limit


class DatabaseError(CatalogError):
    """
    Raised when database operations fail unexpectedly.

    Security Note:
        The message returned to the client is always generic. Driver errors
        (SQL text, constraint names) go into `context` and are logged only.
    """

    status = 500

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
