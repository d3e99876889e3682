"""
TrackCode Backend — Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for allocation and store failures.
How:   Each exception carries a user-safe message and a context dict. Global
       handlers registered in main.py map them to HTTP status codes and a
       structured JSON body.
Who:   Raised by the allocator, the store, and the client/shipment services.

Exception Hierarchy:
    TrackCodeError (base)
    ├── ValidationError            → 400 Bad Request
    │   └── InvalidPrefixError     → 400 (prefix fails format rules)
    ├── NotFoundError              → 404 Not Found
    │   └── ClientNotFoundError    → 404 (unknown client id)
    ├── PrefixUnavailableError     → 409 Conflict (prefix already in use)
    ├── PrefixNotAssignedError     → 409 Conflict (client has no prefix yet)
    ├── AllocationExhaustedError   → 409 Conflict (every candidate taken)
    ├── TrackingCodeConflictError  → 409 Conflict (issued code already stored)
    └── DatabaseError              → 500 Internal Server Error

Errors from the database driver itself are not wrapped by the allocator;
they reach the caller unchanged and the catch-all handler answers 500.
"""

from typing import Any, Dict, Optional


class TrackCodeError(Exception):
    """
    Base exception for all TrackCode application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info, returned as "details"
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(TrackCodeError):
    """
    Raised when client input fails a business rule.

    HTTP 400. Pydantic schema failures keep FastAPI's own 422.
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


class InvalidPrefixError(ValidationError):
    """
    A manually supplied prefix breaks the format rules.

    The message is the specific rule that failed ("prefix must be at least
    2 characters", ...). No retry helps; the user must correct the input.
    """

    def __init__(self, message: str, prefix: Optional[str] = None):
        ctx: Dict[str, Any] = {}
        if prefix is not None:
            ctx["prefix"] = prefix
        super().__init__(message=message, field="prefix", context=ctx)
        self.prefix = prefix


class NotFoundError(TrackCodeError):
    """Raised when a requested resource does not exist. HTTP 404."""

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ClientNotFoundError(NotFoundError):
    """
    The client id does not reference an existing client.

    Fatal for the current shipment-creation attempt: the caller aborts and
    never falls back to a placeholder prefix.
    """

    def __init__(self, client_id: Any):
        super().__init__(resource="client", resource_id=str(client_id))
        self.client_id = client_id


class PrefixUnavailableError(TrackCodeError):
    """
    The prefix is already held by another client.

    Raised by the availability pre-check on manual prefixes and, more
    importantly, when the store's unique constraint rejects a write that
    lost a race. HTTP 409; the user picks another prefix or lets the
    service allocate one.
    """

    def __init__(self, prefix: str, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["prefix"] = prefix
        super().__init__(message=f"Prefix '{prefix}' is already in use", context=ctx)
        self.prefix = prefix


class PrefixNotAssignedError(TrackCodeError):
    """A tracking code was requested for a client that has no prefix yet."""

    def __init__(self, client_id: Any):
        super().__init__(
            message=f"client with ID '{client_id}' has no tracking prefix assigned",
            context={"client_id": str(client_id)},
        )
        self.client_id = client_id


class AllocationExhaustedError(TrackCodeError):
    """
    Every derived prefix candidate is taken.

    Only raised under PREFIX_EXHAUSTION_POLICY=error. The default policy logs
    the condition and returns a timestamp-suffixed prefix instead.
    """

    def __init__(self, base_prefix: str, candidates_tried: int):
        super().__init__(
            message=(
                f"No free prefix could be derived from '{base_prefix}'. "
                f"Assign a prefix manually."
            ),
            context={"base_prefix": base_prefix, "candidates_tried": candidates_tried},
        )
        self.base_prefix = base_prefix
        self.candidates_tried = candidates_tried


class TrackingCodeConflictError(TrackCodeError):
    """
    The shipment insert was rejected because its tracking code already
    exists. Rows written outside the allocator (imports, manual fixes) are
    the only way to get here; the request is rolled back, counter included.
    """

    def __init__(self, tracking_code: str, client_id: Any):
        super().__init__(
            message=f"Tracking code '{tracking_code}' is already assigned to another shipment",
            context={"tracking_code": tracking_code, "client_id": str(client_id)},
        )
        self.tracking_code = tracking_code
        self.client_id = client_id


class DatabaseError(TrackCodeError):
    """
    Raised when a service-level database operation fails unexpectedly.

    The API response stays generic; the context is logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
