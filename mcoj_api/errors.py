"""
Domain errors raised by the service layer.
Each error carries the HTTP status code the API responds with.
"""
from fastapi import status


class SiteError(Exception):
    """Base class for errors that map onto an API error envelope."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SiteError):
    """Bad position, bad file type or size, malformed filename or payload."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidPositionError(ValidationError):
    pass


class NotFoundError(SiteError):
    status_code = status.HTTP_404_NOT_FOUND


class GalleryFullError(SiteError):
    status_code = status.HTTP_400_BAD_REQUEST


class PositionOccupiedError(SiteError):
    status_code = status.HTTP_400_BAD_REQUEST


class EmptyGalleryError(SiteError):
    status_code = status.HTTP_400_BAD_REQUEST


class UpstreamStoreError(SiteError):
    """The database or object store call failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class ConfigurationError(SiteError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
