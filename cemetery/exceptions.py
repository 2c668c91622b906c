"""
Cemetery Records Service: Exception Hierarchy
==============================================

What:  Application exceptions raised by services and the identity dependencies.
How:   Each exception carries a user-safe `message` and a `context` dict.
       Handlers registered in main.py turn them into JSON error responses;
       `context` is logged and only selectively returned.

Exception Hierarchy:
    CemeteryError (base)
    ├── ValidationError       → 400 Bad Request
    ├── AuthenticationError   → 401 Unauthorized
    ├── AuthorizationError    → 403 Forbidden
    ├── NotFoundError         → 404 Not Found
    ├── FileStorageError      → 500 Internal Server Error
    └── DatabaseError         → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class CemeteryError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing description (safe to return in an API response)
        context:  Debug info for the server log
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(CemeteryError):
    """
    Client input broke a business rule the client can fix.

    Examples: empty request details, a duplicate grave-user relation, an
    unsupported picture type.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(CemeteryError):
    """No session token, an unknown token, or an expired session."""

    def __init__(
        self,
        message: str = "You must be signed in to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthorizationError(CemeteryError):
    """
    The caller is known but not allowed to do this.

    Raised for role mismatches (non-admin on an admin endpoint), for reading
    another user's request, and for banned accounts.
    """

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(CemeteryError):
    """
    A referenced row does not exist.

    Services convert SQLAlchemy's `None` into this exception so routes never
    check for missing rows themselves.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource.capitalize()} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource


class FileStorageError(CemeteryError):
    """Writing an uploaded image to the storage volume failed."""

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(CemeteryError):
    """
    An unexpected persistence failure.

    The response message is always generic; query details stay in the log.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
