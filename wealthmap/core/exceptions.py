class WealthMapException(Exception):
    """Base exception for wealth map. ``reason`` is the machine-readable code."""

    reason = "error"

    def __init__(self, message: str = "", reason: str | None = None):
        super().__init__(message)
        if reason is not None:
            self.reason = reason


class UnauthorizedException(WealthMapException):
    """Raised when JWT validation fails"""

    reason = "unauthenticated"


class StalePasswordException(UnauthorizedException):
    """Raised when the token was issued before the last password change"""

    reason = "stale_password"


class ForbiddenException(WealthMapException):
    """Raised when an actor is not allowed to perform an action"""

    reason = "forbidden"


class AccountDeactivatedException(ForbiddenException):
    """Raised when the user or their company is inactive"""

    reason = "account_inactive"


class InsufficientRoleException(ForbiddenException):
    """Raised when the actor's role is below the action's role gate"""

    reason = "insufficient_role"


class CrossTenantForbiddenException(ForbiddenException):
    """Raised when an actor targets another company's data"""

    reason = "cross_tenant_forbidden"


class SelfModificationForbiddenException(ForbiddenException):
    """Raised when an admin tries to demote or deactivate themselves"""

    reason = "self_modification_forbidden"


class NotFoundException(WealthMapException):
    """Raised when resource not found"""

    reason = "not_found"


class ValidationException(WealthMapException):
    """Raised for business logic validation errors"""

    reason = "validation_error"


class ConflictException(WealthMapException):
    """Raised when a state transition or uniqueness rule is violated"""

    reason = "conflict"


class InvitationExpiredException(ConflictException):
    reason = "invitation_expired"


class InvitationAlreadyResolvedException(ConflictException):
    reason = "invitation_already_resolved"


class DuplicatePendingInvitationException(ConflictException):
    reason = "duplicate_pending_invitation"


class StorageException(WealthMapException):
    """Raised when the primary write of an operation fails"""

    reason = "storage_error"
