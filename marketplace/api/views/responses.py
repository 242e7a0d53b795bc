from rest_framework import status
from rest_framework.response import Response

from marketplace.services import ErrorCodes, ServiceResult


ERROR_STATUS = {
    ErrorCodes.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCodes.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCodes.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorCodes.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCodes.DEPENDENCY_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def error_response(result: ServiceResult) -> Response:
    """Render a failed ServiceResult with the HTTP status matching its error code."""
    http_status = ERROR_STATUS.get(result.error, status.HTTP_500_INTERNAL_SERVER_ERROR)
    response = Response(
        {"error": result.error, "detail": result.error_detail, "retryable": result.retryable},
        status=http_status,
    )
    if result.retryable:
        response["Retry-After"] = "5"
    return response
