"""
Base classes and utilities for the service layer.

This module provides the ServiceResult pattern (inspired by Rust's Result type)
and the BaseService class shared by all marketplace services.
"""

import inspect
import logging
import time
from dataclasses import dataclass
from functools import wraps
from typing import Callable, Generic, Optional, TypeVar

from django.core.exceptions import PermissionDenied
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import InterfaceError, OperationalError

from marketplace.domain.exceptions import (
    AuthorizationError,
    ConflictError,
    DependencyUnavailableError,
    MarketplaceError,
    NotFoundError,
    ValidationError,
)
from utils.rbac import is_admin
from utils.transaction_utils import TransactionError


T = TypeVar("T")


# Common error codes for marketplace services
class ErrorCodes:
    """Standard error codes used across marketplace services."""

    VALIDATION_ERROR = ValidationError.code
    NOT_FOUND = NotFoundError.code
    PERMISSION_DENIED = AuthorizationError.code
    CONFLICT = ConflictError.code
    DEPENDENCY_UNAVAILABLE = DependencyUnavailableError.code
    INTERNAL_ERROR = MarketplaceError.code


_EXCEPTIONS_BY_CODE = {
    ErrorCodes.VALIDATION_ERROR: ValidationError,
    ErrorCodes.NOT_FOUND: NotFoundError,
    ErrorCodes.PERMISSION_DENIED: AuthorizationError,
    ErrorCodes.CONFLICT: ConflictError,
    ErrorCodes.DEPENDENCY_UNAVAILABLE: DependencyUnavailableError,
}


@dataclass
class ServiceResult(Generic[T]):
    """
    A result type that encapsulates success or failure from service operations.

    Attributes:
        ok: True if operation succeeded, False otherwise
        value: The success value (present if ok=True)
        error: Error code from ErrorCodes (present if ok=False)
        error_detail: Human-readable error message (present if ok=False)

    Examples:
        >>> result = transaction_service.initiate(listing_id, buyer)
        >>> if result.ok:
        ...     return Response(TransactionSerializer(result.value).data, 201)
        >>> elif result.error == ErrorCodes.CONFLICT:
        ...     return Response({"detail": result.error_detail}, 409)
    """

    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_detail: Optional[str] = None

    @property
    def retryable(self) -> bool:
        """Only store outages are worth retrying; business errors are not."""
        return not self.ok and self.error == ErrorCodes.DEPENDENCY_UNAVAILABLE

    def unwrap(self) -> T:
        """
        Return the value, or raise the domain exception matching the error code.

        Useful for callers (tasks, listeners) that prefer exceptions.
        """
        if self.ok:
            return self.value
        exc_class = _EXCEPTIONS_BY_CODE.get(self.error, MarketplaceError)
        raise exc_class(self.error_detail or self.error)

    def to_dict(self) -> dict:
        """
        Convert to dictionary for JSON serialization.

        Returns:
            Dictionary with 'success' and either 'data' or 'error'
        """
        if self.ok:
            return {"success": True, "data": self.value}
        return {
            "success": False,
            "error": {"code": self.error, "message": self.error_detail, "retryable": self.retryable},
        }


def service_ok(value: T) -> ServiceResult[T]:
    """
    Create a successful ServiceResult.

    Example:
        >>> listing = Listing.objects.get(id=123)
        >>> return service_ok(listing)
    """
    return ServiceResult(ok=True, value=value)


def service_err(error: str, error_detail: str = "") -> ServiceResult:
    """
    Create a failed ServiceResult.

    Args:
        error: Error code (one of ErrorCodes)
        error_detail: Human-readable error message

    Example:
        >>> return service_err(ErrorCodes.NOT_FOUND, f"Listing {id} does not exist")
    """
    return ServiceResult(ok=False, error=error, error_detail=error_detail or error)


class BaseService:
    """
    Base class for all services providing common functionality.

    Provides:
    - Logging with class name
    - Performance timing decorator
    - Admin capability decorator
    - Translation of exceptions into ServiceResult errors

    Usage:
        class ListingService(BaseService):
            @BaseService.log_performance
            def archive(self, listing_id, actor):
                try:
                    ...
                except Exception as e:
                    return self.error_result(e, f"archiving listing {listing_id}")
    """

    def __init__(self):
        """Initialize base service with logger."""
        self.logger = logging.getLogger(self.__class__.__module__ + "." + self.__class__.__name__)

    @staticmethod
    def log_performance(func: Callable) -> Callable:
        """
        Decorator to log performance of service methods.

        Logs execution time and the outcome: info on success, warning on a
        failed ServiceResult, error on an escaped exception.
        """

        @wraps(func)
        def wrapper(self, *args, **kwargs):
            start_time = time.time()
            method_name = f"{self.__class__.__name__}.{func.__name__}"

            try:
                self.logger.debug(f"{method_name} started")
                result = func(self, *args, **kwargs)
                elapsed_time = (time.time() - start_time) * 1000  # Convert to ms

                if isinstance(result, ServiceResult):
                    if result.ok:
                        self.logger.info(f"{method_name} completed successfully in {elapsed_time:.2f}ms")
                    else:
                        self.logger.warning(
                            f"{method_name} failed with error '{result.error}' in {elapsed_time:.2f}ms"
                        )
                else:
                    self.logger.info(f"{method_name} completed in {elapsed_time:.2f}ms")

                return result

            except Exception as e:
                elapsed_time = (time.time() - start_time) * 1000
                self.logger.error(
                    f"{method_name} raised exception after {elapsed_time:.2f}ms: {str(e)}",
                    exc_info=True,
                )
                raise

        return wrapper

    @staticmethod
    def requires_admin(func: Callable) -> Callable:
        """
        Decorator gating a service method behind the admin capability.

        The wrapped method must take an ``actor`` argument. Non-admin actors get
        a PERMISSION_DENIED result and the method body never runs.
        """
        signature = inspect.signature(func)

        @wraps(func)
        def wrapper(self, *args, **kwargs):
            actor = signature.bind_partial(self, *args, **kwargs).arguments.get("actor")
            if not is_admin(actor):
                self.logger.warning(
                    f"{self.__class__.__name__}.{func.__name__} denied for non-admin user "
                    f"{getattr(actor, 'id', None)}"
                )
                return service_err(ErrorCodes.PERMISSION_DENIED, "Admin privileges required")
            return func(self, *args, **kwargs)

        return wrapper

    def error_result(self, exc: Exception, context: str) -> ServiceResult:
        """
        Translate an exception raised inside a service method into a failed result.

        Business errors map to their own code. Store outages map to
        DEPENDENCY_UNAVAILABLE. Anything else is logged with a traceback and
        reported as INTERNAL_ERROR.
        """
        if isinstance(exc, MarketplaceError):
            return service_err(exc.code, exc.message)
        if isinstance(exc, PermissionDenied):
            return service_err(ErrorCodes.PERMISSION_DENIED, str(exc) or "Permission denied")
        if isinstance(exc, DjangoValidationError):
            return service_err(ErrorCodes.VALIDATION_ERROR, "; ".join(exc.messages))
        if isinstance(exc, (OperationalError, InterfaceError, TransactionError)):
            self.logger.error(f"Store unavailable while {context}: {exc}")
            return service_err(ErrorCodes.DEPENDENCY_UNAVAILABLE, "The data store is temporarily unavailable")

        self.logger.error(f"Error {context}: {exc}", exc_info=True)
        return service_err(ErrorCodes.INTERNAL_ERROR, str(exc))
