"""
Domain exceptions for the marketplace core.

Raised inside units of work so that ``transaction.atomic`` rolls back, then
translated into a failed ``ServiceResult`` at the service boundary. Each
exception carries the error code it surfaces as.
"""


class MarketplaceError(Exception):
    """Base class for every business error the marketplace reports."""

    code = "internal_error"
    retryable = False

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__


class ValidationError(MarketplaceError):
    """Malformed input."""

    code = "validation_error"


class NotFoundError(MarketplaceError):
    """Referenced listing, transaction or user does not exist."""

    code = "not_found"


class AuthorizationError(MarketplaceError):
    """Actor lacks the required ownership or role."""

    code = "permission_denied"


class ConflictError(MarketplaceError):
    """State-machine precondition violated."""

    code = "conflict"


class DependencyUnavailableError(MarketplaceError):
    """The store could not be reached."""

    code = "dependency_unavailable"
    retryable = True
