from unittest.mock import patch

import pytest
from django.core.exceptions import PermissionDenied
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import OperationalError

from marketplace.domain.exceptions import ConflictError, DependencyUnavailableError, NotFoundError
from marketplace.services.base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok
from utils.transaction_utils import DeadlockError


class _GatedService(BaseService):
    @BaseService.requires_admin
    def purge(self, listing_id, actor):
        return service_ok(listing_id)


@pytest.mark.unit
class TestServiceResultUnit:
    def test_ok_result(self):
        result = service_ok({"id": 1})

        assert result.ok
        assert result.unwrap() == {"id": 1}
        assert not result.retryable
        assert result.to_dict() == {"success": True, "data": {"id": 1}}

    def test_error_defaults_detail_to_code(self):
        result = service_err(ErrorCodes.CONFLICT)

        assert not result.ok
        assert result.error_detail == ErrorCodes.CONFLICT

    def test_unwrap_raises_matching_exception(self):
        with pytest.raises(NotFoundError, match="gone"):
            service_err(ErrorCodes.NOT_FOUND, "gone").unwrap()

        with pytest.raises(ConflictError):
            service_err(ErrorCodes.CONFLICT, "taken").unwrap()

    def test_only_dependency_errors_are_retryable(self):
        assert service_err(ErrorCodes.DEPENDENCY_UNAVAILABLE, "down").retryable
        for code in (ErrorCodes.VALIDATION_ERROR, ErrorCodes.CONFLICT, ErrorCodes.INTERNAL_ERROR):
            assert not service_err(code, "x").retryable

    def test_to_dict_for_failure(self):
        payload = ServiceResult(ok=False, error=ErrorCodes.CONFLICT, error_detail="taken").to_dict()

        assert payload == {"success": False, "error": {"code": "conflict", "message": "taken", "retryable": False}}


@pytest.mark.unit
class TestErrorResultUnit:
    def setup_method(self):
        self.service = BaseService()

    def test_domain_errors_keep_their_code(self):
        result = self.service.error_result(ConflictError("Listing already reserved"), "testing")

        assert result.error == ErrorCodes.CONFLICT
        assert result.error_detail == "Listing already reserved"

    def test_permission_denied(self):
        assert self.service.error_result(PermissionDenied("nope"), "testing").error == ErrorCodes.PERMISSION_DENIED

    def test_django_validation_error(self):
        result = self.service.error_result(DjangoValidationError(["bad", "worse"]), "testing")

        assert result.error == ErrorCodes.VALIDATION_ERROR
        assert result.error_detail == "bad; worse"

    def test_store_outages_are_dependency_unavailable(self):
        for exc in (OperationalError("connection refused"), DeadlockError("Deadlock detected")):
            result = self.service.error_result(exc, "testing")
            assert result.error == ErrorCodes.DEPENDENCY_UNAVAILABLE
            assert result.retryable

        assert self.service.error_result(DependencyUnavailableError(), "testing").retryable

    def test_unexpected_errors_are_internal(self):
        result = self.service.error_result(KeyError("price"), "testing")

        assert result.error == ErrorCodes.INTERNAL_ERROR


@pytest.mark.unit
class TestRequiresAdminUnit:
    def setup_method(self):
        self.service = _GatedService()

    @patch("marketplace.services.base.is_admin", return_value=False)
    def test_non_admin_gets_permission_denied(self, mock_is_admin):
        actor = object()

        result = self.service.purge("listing-1", actor)

        assert result.error == ErrorCodes.PERMISSION_DENIED
        mock_is_admin.assert_called_once_with(actor)

    @patch("marketplace.services.base.is_admin", return_value=True)
    def test_admin_runs_method(self, mock_is_admin):
        actor = object()

        assert self.service.purge("listing-1", actor=actor).value == "listing-1"
        mock_is_admin.assert_called_once_with(actor)
