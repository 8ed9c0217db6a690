"""
Application exception hierarchy.

Services raise these; the handlers registered in ``newsroom.main`` turn
each one into a distinct, stable HTTP status and ``error`` code:

    NewsroomError (base)
    ├── ValidationError      → 400 validation_error
    ├── NotFoundError        → 404 not_found
    ├── ConflictError        → 409 conflict
    ├── SlugExhaustedError   → 422 slug_exhausted
    └── TransientError       → 503 transient_error
"""
from typing import Any, Dict, Optional


class NewsroomError(Exception):
    """
    Base class for all application errors.

    ``message`` is safe to return to API clients; ``context`` carries extra
    detail for logs and for the ``details`` field of the error body.
    """

    status_code = 500
    code = "internal_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(NewsroomError):
    """Client input breaks a business rule (bad email, self-parenting, ...)."""

    status_code = 400
    code = "validation_error"

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


class NotFoundError(NewsroomError):
    """A referenced news, category, author, tag or image does not exist."""

    status_code = 404
    code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Any = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id is not None:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource
        self.resource_id = resource_id


class ConflictError(NewsroomError):
    """
    Unique-constraint violation (e.g. two writers racing for one slug) or
    an attempt to delete a row that is still referenced or parented.
    """

    status_code = 409
    code = "conflict"

    def __init__(
        self,
        message: str = "The request conflicts with the current state of the resource",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class SlugExhaustedError(NewsroomError):
    """The bounded ``-1``, ``-2``, ... collision loop ran out of attempts."""

    status_code = 422
    code = "slug_exhausted"

    def __init__(self, base_slug: str, attempts: int):
        super().__init__(
            message=f"Could not find a free slug for '{base_slug}' after {attempts} attempts",
            context={"base_slug": base_slug, "attempts": attempts},
        )
        self.base_slug = base_slug
        self.attempts = attempts


class TransientError(NewsroomError):
    """
    Storage failed mid-operation (connectivity loss, unexpected constraint).
    The transaction has already been rolled back when this is raised.
    """

    status_code = 503
    code = "transient_error"

    def __init__(
        self,
        message: str = "A persistence error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
