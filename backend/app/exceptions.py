"""
MeMantra Backend — Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions for the different error scenarios.
How:   Each exception class carries a user-facing message and an optional
       context dict. The global handlers registered in main.py map each
       type to an HTTP status and the response envelope
       {"status": "error", "message": ...}.
Who:   Raised by services and dependencies; caught by global handlers.

Exception Hierarchy:
    MeMantraError (base)                → 500
    ├── ValidationError                 → 400 Bad Request
    ├── ConflictError                   → 400 Bad Request (duplicate user)
    ├── UnauthenticatedError            → 401 Unauthorized
    ├── InvalidCredentialsError         → 401 Unauthorized
    ├── ForbiddenError                  → 403 Forbidden
    ├── NotFoundError                   → 404 Not Found
    └── DatabaseError                   → 500 Internal Server Error

A lost insert race on a unique constraint is not an exception type here:
services detect it with `app.database.is_unique_violation` and turn it into
a success response.
"""

from typing import Any, Dict, Optional


class MeMantraError(Exception):
    """
    Base exception for all MeMantra application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "Something went wrong",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(MeMantraError):
    """
    Client input failed a business rule that the schema cannot express.

    When: Messaging yourself, replying across conversations, wrong current
          password, an admin deleting their own account.
    HTTP: 400 Bad Request
    """

    status_code = 400

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


class ConflictError(MeMantraError):
    """
    Raised when a create would duplicate a unique user-facing value.

    When: Registering with an email or username already taken.
    HTTP: 400, matching what the mobile client already handles.
    """

    status_code = 400


class UnauthenticatedError(MeMantraError):
    """No valid caller identity: missing, malformed or expired bearer token."""

    status_code = 401

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InvalidCredentialsError(MeMantraError):
    """Login failed. The message never says which half was wrong."""

    status_code = 401

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="Invalid credentials", context=context)


class ForbiddenError(MeMantraError):
    """
    Caller is authenticated but may not touch the resource.

    When: Acting on another user's collection or conversation, or a non-admin
          calling an admin route.
    HTTP: 403 Forbidden
    """

    status_code = 403

    def __init__(
        self,
        message: str = "Access denied",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(MeMantraError):
    """
    Raised when a requested resource does not exist.

    Takes either a ready-made message ("Mantra not found in collection") or a
    resource name, from which "<Resource> not found" is built.
    """

    status_code = 404

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[Any] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = resource_id
        super().__init__(
            message=message or f"{resource.capitalize()} not found",
            context=ctx,
        )


class DatabaseError(MeMantraError):
    """
    Raised when a database operation fails unexpectedly.

    The message is a fixed, operation-level description ("Error adding
    mantra to collection"); driver errors, SQL and constraint names only
    go to the server log through `context`.
    """

    status_code = 500

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
