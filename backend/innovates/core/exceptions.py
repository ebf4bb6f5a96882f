"""
Domain exceptions raised by services and mapped to HTTP errors by the routers
"""
from fastapi import HTTPException, status


class InnovatesError(Exception):
    """Base class for errors raised by the service layer"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details=None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(InnovatesError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(InnovatesError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(InnovatesError):
    status_code = status.HTTP_409_CONFLICT


class PermissionDeniedError(InnovatesError):
    status_code = status.HTTP_403_FORBIDDEN


class PaymentError(InnovatesError):
    """Payment could not be created or is not in a capturable state"""
    status_code = status.HTTP_400_BAD_REQUEST


class ConfigurationError(InnovatesError):
    """A required API key or setting is missing"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class ExternalServiceError(InnovatesError):
    """A third-party API (OpenAI, Stripe, PayPal, Resend) returned an error"""
    status_code = status.HTTP_502_BAD_GATEWAY


def to_http_exception(error: InnovatesError) -> HTTPException:
    """Convert a service error into the HTTPException the routers raise"""
    detail = error.message
    if error.details is not None:
        detail = {"error": error.message, "details": error.details}
    return HTTPException(status_code=error.status_code, detail=detail)
