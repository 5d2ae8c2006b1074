"""
tabulation/exceptions.py
Typed exceptions for the scoring and tabulation core.

Covers:
- Configuration failures (fatal, never retried)
- Identity failures (missing session, unknown principal)
- Validation failures before any write reaches the store
- Store failures (surfaced with the store's message)

A locked criterion is NOT an exception: a write that the permission
resolver rejects is a no-op reported through ScoreWriteResult.
"""
from typing import Any, Dict, Optional


class TabulationException(Exception):
    """Base exception for the tabulation service"""
    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    error: str = "Internal Error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details
        super().__init__(self.message)


class ConfigurationError(TabulationException):
    """
    Raised when required backing-store or signing configuration is absent.

    Fatal to the session; surfaced immediately.
    """
    status_code = 500
    code = "CONFIGURATION_ERROR"
    error = "Configuration Error"


class IdentityError(TabulationException):
    """Raised when the caller's identity cannot be established."""
    status_code = 401
    code = "IDENTITY_ERROR"
    error = "Unauthorized"


class NoSessionError(IdentityError):
    """No stored identity for the requested role."""
    code = "SESSION_MISSING"

    def __init__(self, role: str = "user"):
        super().__init__(f"No {role} session found. Please sign in again.")


class PrincipalNotFoundError(IdentityError):
    """
    The stored identity does not resolve to a record.

    Examples:
    - Judge username no longer exists
    - The principal's assigned event was deleted
    """
    code = "PRINCIPAL_NOT_FOUND"


class InvalidCredentialsError(IdentityError):
    """Username/password pair rejected."""
    code = "AUTH_INVALID"

    def __init__(self, message: str = "Invalid username or password."):
        super().__init__(message)


class ScoreValidationError(TabulationException):
    """
    Raised when a score or bulk operation fails validation.

    Examples:
    - Non-numeric or out-of-range raw value
    - Missing score for a criterion before submit-all
    """
    status_code = 422
    code = "VALIDATION_ERROR"
    error = "Validation Error"


class ScoringSuspendedError(TabulationException):
    """Raised when the principal's event is not the active event."""
    status_code = 409
    code = "EVENT_INACTIVE"
    error = "Event Inactive"

    def __init__(self, event_id: int):
        super().__init__(
            "Event is not active. Scoring is suspended for this session.",
            details={"event_id": event_id},
        )


class NotFoundError(TabulationException):
    """Raised when a requested record doesn't exist."""
    status_code = 404
    code = "NOT_FOUND"
    error = "Not Found"

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} with id '{identifier}' not found"
        super().__init__(message)


class StoreError(TabulationException):
    """
    Raised when a read or write against the backing store fails.

    The in-progress operation is aborted and rolled back.
    """
    status_code = 503
    code = "STORE_ERROR"
    error = "Store Error"
