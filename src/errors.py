from typing import Optional

from fastapi import status


class ShortLinkError(Exception):
    """Base for errors that map onto an HTTP status and a ``{message}`` body."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ShortLinkError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class ForbiddenError(ShortLinkError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden: Access denied"


class NotFoundError(ShortLinkError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "URL not found"


class ConflictError(ShortLinkError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "This custom alias already exists. Please choose another one."


class AllocationExhausted(ShortLinkError):
    default_message = "Failed to generate a unique short code. Try again."


class StoreError(ShortLinkError):
    default_message = "Storage error"
