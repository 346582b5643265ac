"""
Error codes, workflow exceptions and the DRF exception handler.

Every rejected command surfaces synchronously as a WorkflowException
subclass. The handler renders all errors, including DRF and Django ones,
as::

    {"error": {"code", "message", "field"?, "details"?}, "request_id"}
"""

import logging
import uuid
from enum import Enum
from typing import Any, Dict, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Machine-readable error codes."""

    VALIDATION_ERROR = "VALIDATION_ERROR"              # 400
    PERMISSION_DENIED = "PERMISSION_DENIED"            # 403
    NOT_FOUND = "NOT_FOUND"                            # 404
    PRECONDITION_FAILED = "PRECONDITION_FAILED"        # 409
    INVALID_TRANSITION = "INVALID_TRANSITION"          # 409
    DRAFT_PRODUCER_ERROR = "DRAFT_PRODUCER_ERROR"      # 502
    INTERNAL_ERROR = "INTERNAL_ERROR"                  # 500


def error_body(
    code: ErrorCode,
    message: str,
    request_id: str,
    field: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Build the error payload; empty ``field`` and ``details`` are omitted."""
    error = {"code": ErrorCode(code).value, "message": message}
    if field:
        error["field"] = field
    if details:
        error["details"] = details
    return {"error": error, "request_id": request_id}


# =============================================================================
# Workflow Exceptions
# =============================================================================

class WorkflowException(APIException):
    """Base class; subclasses pin the status code and error code."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = ErrorCode.INTERNAL_ERROR
    default_detail = "An error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message or self.default_detail
        self.field = field
        self.error_details = details or {}
        super().__init__(detail=self.message)

    def to_dict(self, request_id: str) -> Dict[str, Any]:
        return error_body(self.error_code, self.message, request_id, self.field, self.error_details)


class ValidationError(WorkflowException):
    """Malformed payload or unknown field."""
    error_code = ErrorCode.VALIDATION_ERROR
    default_detail = "Validation failed"


class NotFoundError(WorkflowException):
    """Unknown work item id."""
    status_code = status.HTTP_404_NOT_FOUND
    error_code = ErrorCode.NOT_FOUND
    default_detail = "Resource not found"


class PreconditionFailedError(WorkflowException):
    """
    A gate or invariant does not hold: wrong role or screen, item not
    completed, unpaired images, blank description.
    """
    status_code = status.HTTP_409_CONFLICT
    error_code = ErrorCode.PRECONDITION_FAILED
    default_detail = "Precondition failed"


class InvalidTransitionError(WorkflowException):
    """Requested status change is not an allowed edge."""
    status_code = status.HTTP_409_CONFLICT
    error_code = ErrorCode.INVALID_TRANSITION
    default_detail = "Invalid status transition"


class DraftProducerError(WorkflowException):
    """The Draft Producer returned something unusable."""
    status_code = status.HTTP_502_BAD_GATEWAY
    error_code = ErrorCode.DRAFT_PRODUCER_ERROR
    default_detail = "Draft producer failed"


# =============================================================================
# Exception Handler
# =============================================================================

DRF_STATUS_CODES = {
    status.HTTP_403_FORBIDDEN: ErrorCode.PERMISSION_DENIED,
    status.HTTP_404_NOT_FOUND: ErrorCode.NOT_FOUND,
}


def _describe_drf_data(data):
    """Split DRF's response data into (message, details)."""
    if isinstance(data, dict):
        if 'detail' in data:
            return str(data['detail']), None
        return "Validation failed", data
    if isinstance(data, list):
        return (str(data[0]) if data else "Validation failed"), {"errors": data}
    return str(data), None


def workflow_exception_handler(exc, context):
    """
    REST_FRAMEWORK['EXCEPTION_HANDLER'].

    Rejections are logged at WARNING and counted per code; anything
    unexpected is logged with its traceback and reported as INTERNAL_ERROR
    without leaking the original message.
    """
    from apps.core.metrics import increment_command_rejected

    request = context.get('request')
    request_id = getattr(request, 'request_id', None) or str(uuid.uuid4())

    if isinstance(exc, WorkflowException):
        logger.warning(
            "Command rejected: %s - %s",
            exc.error_code.value,
            exc.message,
            extra={"error_code": exc.error_code.value, "field": exc.field},
        )
        increment_command_rejected(exc.error_code.value)
        return Response(exc.to_dict(request_id), status=exc.status_code)

    if isinstance(exc, DjangoValidationError):
        if hasattr(exc, 'message_dict'):
            message, details = "Validation failed", exc.message_dict
        else:
            message, details = (exc.messages[0] if exc.messages else "Validation failed"), None
        increment_command_rejected(ErrorCode.VALIDATION_ERROR.value)
        return Response(
            error_body(ErrorCode.VALIDATION_ERROR, message, request_id, details=details),
            status=status.HTTP_400_BAD_REQUEST,
        )

    if isinstance(exc, Http404):
        increment_command_rejected(ErrorCode.NOT_FOUND.value)
        return Response(
            error_body(ErrorCode.NOT_FOUND, str(exc) or "Resource not found", request_id),
            status=status.HTTP_404_NOT_FOUND,
        )

    # Serializer validation, permissions, parse errors
    response = drf_exception_handler(exc, context)
    if response is not None:
        if response.status_code >= 500:
            code = ErrorCode.INTERNAL_ERROR
        else:
            code = DRF_STATUS_CODES.get(response.status_code, ErrorCode.VALIDATION_ERROR)
        message, details = _describe_drf_data(response.data)
        increment_command_rejected(code.value)
        return Response(
            error_body(code, message, request_id, details=details),
            status=response.status_code,
        )

    logger.exception("Unhandled exception: %s", type(exc).__name__)
    return Response(
        error_body(ErrorCode.INTERNAL_ERROR, "An unexpected error occurred", request_id),
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
