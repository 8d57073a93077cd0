"""
Exception handling utilities.

Defines the typed error hierarchy raised by services and translated
into HTTP responses by the API error middleware.
"""

from sqlalchemy.exc import DBAPIError, OperationalError


class PromorangError(Exception):
    """
    Base class for domain errors.

    Attributes:
        message: Human-readable message shown to the caller
        code: Stable machine-readable error code
        status: HTTP status used when surfaced through the API
    """

    status: int = 400
    default_code: str = "ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


class ValidationError(PromorangError):
    """Bad input shape."""

    status = 422
    default_code = "VALIDATION_ERROR"


class NotFoundError(PromorangError):
    """Code, coupon, invitation, member or account missing."""

    status = 404
    default_code = "NOT_FOUND"


class StateConflictError(PromorangError):
    """Operation not allowed in the current state of the record."""

    status = 409
    default_code = "STATE_CONFLICT"


class AuthenticationError(PromorangError):
    """Caller identity is missing or malformed."""

    status = 401
    default_code = "UNAUTHORIZED"


class AuthorizationError(PromorangError):
    """Permission denied."""

    status = 403
    default_code = "PERMISSION_DENIED"


class PersistenceError(PromorangError):
    """Datastore unavailable or write failed."""

    status = 500
    default_code = "SERVER_ERROR"


# Referral code validation


class InvalidCode(NotFoundError):
    """Referral code does not exist."""

    default_code = "INVALID_CODE"

    def __init__(self, message: str = "Invalid referral code") -> None:
        super().__init__(message)


class InactiveCode(StateConflictError):
    """Referral code was deactivated."""

    status = 400
    default_code = "INACTIVE_CODE"

    def __init__(self, message: str = "Referral code is inactive") -> None:
        super().__init__(message)


class MaxUsesReached(StateConflictError):
    """Referral code hit its usage cap."""

    status = 400
    default_code = "MAX_USES_REACHED"

    def __init__(
        self, message: str = "Referral code has reached maximum uses"
    ) -> None:
        super().__init__(message)


class ExpiredCode(StateConflictError):
    """Referral code is past its expiry."""

    status = 400
    default_code = "EXPIRED_CODE"

    def __init__(self, message: str = "Referral code has expired") -> None:
        super().__init__(message)


# Attribution


class SelfReferral(StateConflictError):
    """User tried to sign up with their own code."""

    status = 400
    default_code = "SELF_REFERRAL"

    def __init__(self, message: str = "Cannot refer yourself") -> None:
        super().__init__(message)


class AlreadyReferred(StateConflictError):
    """User already has a referrer."""

    default_code = "ALREADY_REFERRED"

    def __init__(self, message: str = "User already has a referrer") -> None:
        super().__init__(message)


# Advertiser teams


class InvalidRole(ValidationError):
    """Role is unknown or cannot be assigned."""

    default_code = "INVALID_ROLE"


class AlreadyMember(StateConflictError):
    """User already belongs to the account."""

    default_code = "ALREADY_MEMBER"


class DuplicateInvite(StateConflictError):
    """A live invitation to this email already exists."""

    default_code = "DUPLICATE_INVITE"

    def __init__(
        self,
        message: str = "An invitation has already been sent to this email",
    ) -> None:
        super().__init__(message)


class InvalidOrExpiredInvitation(NotFoundError):
    """Invitation token is unknown, consumed or expired."""

    default_code = "INVALID_OR_EXPIRED_INVITATION"

    def __init__(self, message: str = "Invalid or expired invitation") -> None:
        super().__init__(message)


class CannotRemoveOwner(StateConflictError):
    """The owner membership cannot be removed."""

    default_code = "CANNOT_REMOVE_OWNER"

    def __init__(self, message: str = "Cannot remove the account owner") -> None:
        super().__init__(message)


class CannotChangeOwnerRole(StateConflictError):
    """The owner role can only change through ownership transfer."""

    default_code = "CANNOT_CHANGE_OWNER_ROLE"

    def __init__(self, message: str = "Cannot change owner role") -> None:
        super().__init__(message)


class OwnershipTransferFailed(PersistenceError):
    """Role swap did not apply to both memberships; nothing was changed."""

    default_code = "OWNERSHIP_TRANSFER_FAILED"

    def __init__(self, message: str = "Failed to transfer ownership") -> None:
        super().__init__(message)


# Coupons


class CouponError(StateConflictError):
    """Coupon failed validation."""

    status = 400
    default_code = "INVALID_COUPON"


class CouponExpired(CouponError):
    """Coupon is past its expiry."""

    default_code = "COUPON_EXPIRED"

    def __init__(self, message: str = "This coupon has expired") -> None:
        super().__init__(message)


# Exception categories based on handling strategy

# Must log and surface as 5xx
MUST_LOG = (
    OperationalError,  # Database unavailable
    DBAPIError,  # Driver-level write failures
    PersistenceError,
)


def must_log(exc: Exception) -> bool:
    """
    Check if exception must be logged with traceback.

    Args:
        exc: Exception to check

    Returns:
        True if exception must be logged
    """
    return isinstance(exc, MUST_LOG)
