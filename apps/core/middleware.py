"""
Request ID middleware for the workflow service.

Every request gets an id (taken from a valid incoming ``X-Request-ID`` header
or freshly generated). The id and the operator role of the session are kept
in a thread-local so that log records and Celery task headers can carry them.

Usage in LOGGING config:

    'filters': {'request_id': {'()': 'apps.core.middleware.RequestIDFilter'}},
"""

import uuid
import threading
import logging
from django.utils.deprecation import MiddlewareMixin

logger = logging.getLogger(__name__)

_request_context = threading.local()


def get_request_id():
    """Current request id, or None outside of a request/task."""
    return getattr(_request_context, 'request_id', None)


def get_operator_role():
    return getattr(_request_context, 'operator_role', None)


def set_request_context(request_id, operator_role=None):
    _request_context.request_id = request_id
    _request_context.operator_role = operator_role


def clear_request_context():
    _request_context.request_id = None
    _request_context.operator_role = None


def _coerce_request_id(value):
    if value:
        try:
            uuid.UUID(value)
            return value
        except (ValueError, TypeError):
            pass
    return str(uuid.uuid4())


class RequestIDMiddleware(MiddlewareMixin):
    """
    Attach a request id to the request, the thread-local context and the
    response headers. Must run after SessionMiddleware so the operator role
    stored in the navigation state is visible.
    """

    REQUEST_ID_HEADER = 'HTTP_X_REQUEST_ID'
    RESPONSE_HEADER = 'X-Request-ID'

    def process_request(self, request):
        request_id = _coerce_request_id(request.META.get(self.REQUEST_ID_HEADER))

        operator_role = None
        session = getattr(request, 'session', None)
        if session is not None:
            operator_role = (session.get('navigation') or {}).get('role')

        set_request_context(request_id, operator_role)
        request.request_id = request_id
        return None

    def process_response(self, request, response):
        request_id = getattr(request, 'request_id', None)
        if request_id:
            response[self.RESPONSE_HEADER] = request_id
        clear_request_context()
        return response


class RequestIDFilter(logging.Filter):
    """Adds ``request_id`` and ``operator_role`` to every log record."""

    def filter(self, record):
        record.request_id = get_request_id() or '-'
        record.operator_role = get_operator_role() or '-'
        return True


def celery_request_id_headers():
    """
    Headers to pass to Celery tasks for correlation.

        produce_draft.apply_async(args=[item.id], headers=celery_request_id_headers())
    """
    request_id = get_request_id()
    if request_id:
        return {'request_id': request_id}
    return {}


def setup_celery_request_context(headers):
    """Restore the request id inside a Celery task (see config.celery)."""
    set_request_context(_coerce_request_id((headers or {}).get('request_id')))
