"""
Error taxonomy for the booking engine.

``SlotUnavailable`` and ``LimitExceeded`` are business outcomes: service
functions return them next to the result instead of raising. Everything else
is raised and translated to an HTTP response by the views.
"""
from rest_framework import status
from rest_framework.response import Response


class BookingEngineError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = 'error'

    def __init__(self, message, code=None, **details):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details

    def as_response_data(self):
        data = {'error': self.message, 'code': self.code}
        data.update(self.details)
        return data


class ValidationError(BookingEngineError):
    default_code = 'validation_error'


class NotFound(BookingEngineError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = 'not_found'


class InactiveResource(BookingEngineError):
    default_code = 'inactive_resource'


class SlotUnavailable(BookingEngineError):
    status_code = status.HTTP_409_CONFLICT
    default_code = 'slot_unavailable'


class LimitExceeded(BookingEngineError):
    default_code = 'limit_exceeded'


class DependencyFailure(BookingEngineError):
    """An external collaborator failed; logged, never rolls back a booking."""
    status_code = status.HTTP_502_BAD_GATEWAY
    default_code = 'dependency_failure'


def error_response(error):
    """Render a BookingEngineError as a DRF response."""
    return Response(error.as_response_data(), status=error.status_code)
