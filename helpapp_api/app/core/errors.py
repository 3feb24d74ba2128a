"""
Typed application errors.

Every error raised by the services carries an ``ErrorKind``
discriminant, a stable machine-readable ``code`` and the HTTP status
used by the API for that error.  The exception handlers registered in
``main.create_app`` render them without looking at the message text,
so messages can be reworded freely.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    DOMAIN_RULE = "domain_rule"
    INTERNAL = "internal"


_DEFAULT_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.DOMAIN_RULE: 400,
    ErrorKind.INTERNAL: 500,
}


class AppError(Exception):
    """Base class for all domain and boundary errors.

    Subclasses set ``kind``, ``code`` and ``default_message``; the
    ``status_code`` defaults to the conventional status for ``kind``
    and is overridden where an endpoint follows a different
    convention (e.g. missing references in a request body are 400).
    """

    kind: ErrorKind = ErrorKind.INTERNAL
    code: str = "INTERNAL_ERROR"
    default_message: str = "Internal Server Error"
    status_code: Optional[int] = None

    def __init__(self, message: Optional[str] = None, **context: Any) -> None:
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    @property
    def http_status(self) -> int:
        if self.status_code is not None:
            return self.status_code
        return _DEFAULT_STATUS[self.kind]

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "code": self.code}


# ---------------------------------------------------------------------------
# Generic kinds
# ---------------------------------------------------------------------------


class ValidationError(AppError):
    kind = ErrorKind.VALIDATION
    code = "VALIDATION_FAILED"
    default_message = "Validation failed"


class Unauthenticated(AppError):
    kind = ErrorKind.UNAUTHENTICATED
    code = "UNAUTHENTICATED"
    default_message = "Authentication failed"


class Forbidden(AppError):
    kind = ErrorKind.FORBIDDEN
    code = "FORBIDDEN"
    default_message = "Forbidden: Insufficient privileges"


class NotFound(AppError):
    kind = ErrorKind.NOT_FOUND
    code = "NOT_FOUND"
    default_message = "Not found"


class Conflict(AppError):
    kind = ErrorKind.CONFLICT
    code = "CONFLICT"
    default_message = "Conflict"


class DomainRuleViolation(AppError):
    kind = ErrorKind.DOMAIN_RULE
    code = "DOMAIN_RULE_VIOLATION"
    default_message = "Operation not permitted"


class InternalError(AppError):
    kind = ErrorKind.INTERNAL
    code = "INTERNAL_ERROR"


class ConfigurationError(InternalError):
    code = "CONFIGURATION_ERROR"
    default_message = "Server is misconfigured"


# ---------------------------------------------------------------------------
# Tokens and accounts
# ---------------------------------------------------------------------------


class TokenError(Unauthenticated):
    code = "TOKEN_INVALID"


class TokenExpired(TokenError):
    code = "TOKEN_EXPIRED"
    default_message = "Authentication token has expired. Please log in again."


class TokenMalformed(TokenError):
    code = "TOKEN_MALFORMED"
    default_message = "Authentication token is malformed."


class TokenNotYetValid(TokenError):
    code = "TOKEN_NOT_YET_VALID"
    default_message = "Authentication token is not active yet. Please try again later."


class TokenInvalid(TokenError):
    code = "TOKEN_INVALID"
    default_message = "Invalid authentication token. Please log in again."


class InvalidCredentials(Unauthenticated):
    code = "INVALID_CREDENTIALS"
    default_message = "Invalid email or password."


class AccountNotFound(Unauthenticated):
    """A verified token names a user the store no longer holds."""

    code = "ACCOUNT_NOT_FOUND"
    default_message = "The account for this token no longer exists. Please sign up or log in again."


class EmailAlreadyInUse(Conflict):
    code = "EMAIL_IN_USE"
    default_message = "This email address is already in use. Please use a different one."


class UserNotFound(NotFound):
    code = "USER_NOT_FOUND"
    default_message = "User not found."


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class DuplicateServiceType(Conflict):
    code = "DUPLICATE_SERVICE_TYPE"
    default_message = "Service type already exists."


class ServiceTypeNotFound(NotFound):
    code = "SERVICE_TYPE_NOT_FOUND"
    default_message = "Service type not found."
    status_code = 400


# ---------------------------------------------------------------------------
# Bookings and reviews
# ---------------------------------------------------------------------------


class ProviderNotFound(NotFound):
    code = "PROVIDER_NOT_FOUND"
    default_message = "Provider not found or is not a service provider."
    status_code = 400


class ServiceNotFound(NotFound):
    code = "SERVICE_NOT_FOUND"
    default_message = "Service not found."
    status_code = 400


class BookingNotFound(NotFound):
    code = "BOOKING_NOT_FOUND"
    default_message = "Booking not found."
    status_code = 400


class ServiceOwnershipMismatch(DomainRuleViolation):
    code = "SERVICE_OWNERSHIP_MISMATCH"
    default_message = "Service does not belong to the specified provider."


class Unauthorized(DomainRuleViolation):
    """The acting user is not the party a booking rule requires."""

    code = "UNAUTHORIZED"
    default_message = "Unauthorized: You are not allowed to act on this booking."


class TerminalState(DomainRuleViolation):
    code = "TERMINAL_STATE"
    default_message = "Cannot change status of a completed or rejected booking."


class InvalidTransition(DomainRuleViolation):
    code = "INVALID_TRANSITION"
    default_message = "Invalid status transition."


class BookingNotCompleted(DomainRuleViolation):
    code = "BOOKING_NOT_COMPLETED"
    default_message = "Review can only be submitted for completed bookings."


class ReviewAlreadyExists(Conflict):
    code = "REVIEW_ALREADY_EXISTS"
    default_message = "A review for this booking already exists."
    status_code = 400
