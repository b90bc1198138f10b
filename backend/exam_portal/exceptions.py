from fastapi import status


class PortalError(Exception):
    """Base class for errors raised by the portal services.

    Each subclass maps to one HTTP status; the app registers a single handler
    that renders ``{"detail": message, **extra}``.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, **extra):
        super().__init__(message)
        self.message = message
        self.extra = extra


class NotFoundError(PortalError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(PortalError):
    # extra carries the redacted summary of the existing submission
    status_code = status.HTTP_409_CONFLICT


class UnauthorizedError(PortalError):
    status_code = status.HTTP_403_FORBIDDEN


class ValidationError(PortalError):
    status_code = status.HTTP_400_BAD_REQUEST


class UpstreamError(PortalError):
    status_code = status.HTTP_502_BAD_GATEWAY
